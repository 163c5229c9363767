"""
Tests for slot schedule helpers.
"""

import pytest
from datetime import date, time, timedelta

from assessment_service.core.timezone import organization_today
from assessment_service.services.slot_schedule import (
    parse_booking_date,
    resolve_booking_date,
    resolve_slot,
    slot_window
)


class TestSlotWindow:
    """Test the slot index to time window mapping."""

    @pytest.mark.parametrize("slot,start,end", [
        (1, time(9, 0), time(11, 0)),
        (2, time(12, 0), time(14, 0)),
        (3, time(15, 0), time(17, 0)),
        (4, time(18, 0), time(20, 0)),
    ])
    def test_known_slots(self, slot, start, end):
        assert slot_window(slot) == (start, end)

    @pytest.mark.parametrize("slot", [0, 5, -3, 100, None])
    def test_unknown_slots_default_to_midday(self, slot):
        assert slot_window(slot) == (time(12, 0), time(14, 0))


class TestParseBookingDate:
    """Test the accepted date formats."""

    @pytest.mark.parametrize("raw", [
        "2025-03-09",
        "2025-03-09T10:15:00",
        "2025-03-09T10:15:00Z",
        "09-03-2025",
        "09/03/2025",
        "2025/03/09",
        "09 Mar 2025",
        "9 March 2025",
        "Mar 09, 2025",
        "March 9, 2025",
        "  2025-03-09  ",
    ])
    def test_formats(self, raw):
        assert parse_booking_date(raw) == date(2025, 3, 9)

    def test_month_first_when_day_first_is_impossible(self):
        assert parse_booking_date("12/25/2025") == date(2025, 12, 25)

    @pytest.mark.parametrize("raw", [None, "", "   ", "tomorrow", "2025-13-40", "32/13/2025"])
    def test_unparseable(self, raw):
        assert parse_booking_date(raw) is None


class TestResolveSlot:
    """Test concrete slot timestamps."""

    def test_resolve_slot_localizes_to_organization_zone(self):
        window = resolve_slot("2025-03-09", 1, "Asia/Kolkata")

        assert window.booking_date == date(2025, 3, 9)
        assert window.slot_number == 1
        assert window.start_time.hour == 9
        assert window.end_time.hour == 11
        assert window.start_time.utcoffset() == timedelta(hours=5, minutes=30)
        assert window.end_time - window.start_time == timedelta(hours=2)

    def test_resolve_slot_keeps_requested_index(self):
        """Test that the requested index is recorded even when it falls back to midday."""
        window = resolve_slot("2025-03-09", 7, "Asia/Kolkata")

        assert window.slot_number == 7
        assert window.start_time.hour == 12

    def test_fallback_date_is_organization_today(self):
        assert resolve_booking_date("garbage", "Asia/Kolkata") == organization_today("Asia/Kolkata")

    def test_other_organization_zone(self):
        window = resolve_slot("2025-07-01", 4, "America/New_York")

        assert window.start_time.utcoffset() == timedelta(hours=-4)
        assert window.start_time.hour == 18
