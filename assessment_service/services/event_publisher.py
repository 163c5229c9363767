"""
Event Publisher Service for Assessment Service.
Publishes booking telemetry to Redis for downstream consumers.
"""

import json
import logging
from typing import Dict, Any, Optional

from assessment_service.db.redis_client import RedisManager

logger = logging.getLogger(__name__)


class BookingEventPublisher:
    """
    Publishes booking events to Redis channels.
    Publishing is best effort: failures are logged and never raised.
    """

    def __init__(self, redis_manager: RedisManager):
        self.redis_manager = redis_manager
        self.channel_prefix = "assessment:bookings"

    async def publish_test_booking_created(self, booking, checks: Optional[Dict[str, Any]] = None):
        """
        Publish test booking created notification.

        Args:
            booking: TestBooking object to publish
            checks: Informational duplicate-booking flags computed during booking
        """
        try:
            channel = f"{self.channel_prefix}:created"
            message = {
                "type": "TestBookingCreated",
                "booking_id": booking.id,
                "test_id": booking.test_id,
                "user_sap_id": booking.user_sap_id,
                "booking_data": booking.to_dict(),
                "checks": checks or {}
            }

            await self.redis_manager.publish(channel, json.dumps(message))
            logger.info(f"Published TestBookingCreated for booking {booking.id}")

        except Exception as e:
            logger.error(f"Failed to publish TestBookingCreated: {e}")
