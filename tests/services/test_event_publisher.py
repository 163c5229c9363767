"""
Tests for booking telemetry publishing.
"""

import json
import pytest
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

from assessment_service.models.assessment import TestBooking, BookingStatus
from assessment_service.services.event_publisher import BookingEventPublisher


@pytest.fixture
def booking():
    return TestBooking(
        id=42,
        test_id=7,
        user_sap_id="5000050001",
        booking_date=date(2025, 2, 1),
        start_time=datetime(2025, 2, 1, 3, 30, tzinfo=timezone.utc),
        end_time=datetime(2025, 2, 1, 5, 30, tzinfo=timezone.utc),
        slot_number=1,
        status=BookingStatus.PENDING,
        booked_at=datetime(2025, 1, 30, 10, 0, tzinfo=timezone.utc)
    )


class TestBookingEventPublisher:
    """Test cases for BookingEventPublisher."""

    @pytest.mark.asyncio
    async def test_created_event_payload(self, mock_redis_manager, booking):
        publisher = BookingEventPublisher(mock_redis_manager)

        await publisher.publish_test_booking_created(booking, {"has_booked_test_previously": True})

        mock_redis_manager.publish.assert_awaited_once()
        channel, raw = mock_redis_manager.publish.call_args[0]
        message = json.loads(raw)

        assert channel == "assessment:bookings:created"
        assert message["type"] == "TestBookingCreated"
        assert message["booking_id"] == 42
        assert message["booking_data"]["booking_date"] == "2025-02-01"
        assert message["booking_data"]["slot_number"] == 1
        assert message["booking_data"]["status"] == BookingStatus.PENDING
        assert message["checks"] == {"has_booked_test_previously": True}

    @pytest.mark.asyncio
    async def test_created_event_without_checks(self, mock_redis_manager, booking):
        publisher = BookingEventPublisher(mock_redis_manager)

        await publisher.publish_test_booking_created(booking)

        message = json.loads(mock_redis_manager.publish.call_args[0][1])
        assert message["checks"] == {}

    @pytest.mark.asyncio
    async def test_publish_failure_is_swallowed(self, booking):
        redis = AsyncMock()
        redis.publish = AsyncMock(side_effect=ConnectionError("redis down"))
        publisher = BookingEventPublisher(redis)

        await publisher.publish_test_booking_created(booking)

        redis.publish.assert_awaited_once()
