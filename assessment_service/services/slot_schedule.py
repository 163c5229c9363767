"""
Slot schedule for test bookings.
Maps slot indices to daily time windows and parses candidate-supplied dates.
"""

from datetime import date, datetime, time
from typing import Dict, Optional, Tuple
import logging

from assessment_service.core.timezone import localize, organization_today
from assessment_service.schemas.booking import SlotWindow

logger = logging.getLogger(__name__)

# Daily windows per slot index
SLOT_WINDOWS: Dict[int, Tuple[time, time]] = {
    1: (time(9, 0), time(11, 0)),
    2: (time(12, 0), time(14, 0)),
    3: (time(15, 0), time(17, 0)),
    4: (time(18, 0), time(20, 0)),
}

DEFAULT_SLOT = 2

# Tried in order after ISO parsing fails
DATE_FORMATS = (
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)


def slot_window(slot_number: Optional[int]) -> Tuple[time, time]:
    """
    Return the (start, end) wall-clock window for a slot index.

    Unknown indices fall back to the default midday window.
    """
    return SLOT_WINDOWS.get(slot_number, SLOT_WINDOWS[DEFAULT_SLOT])


def parse_booking_date(raw: Optional[str]) -> Optional[date]:
    """
    Parse a candidate-supplied date string.

    Args:
        raw: Date text from the booking form

    Returns:
        Calendar date, or None if the text is empty or unparseable
    """
    if raw is None:
        return None

    text = raw.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def resolve_booking_date(raw: Optional[str], tz_name: Optional[str] = None) -> date:
    """
    Resolve the booking date, defaulting to today in the organizational zone.

    Args:
        raw: Date text from the booking form
        tz_name: Organizational time zone name

    Returns:
        Parsed date, or today's organizational date when parsing fails
    """
    parsed = parse_booking_date(raw)
    if parsed is None:
        today = organization_today(tz_name)
        logger.warning(f"Invalid date format: '{raw}', using today's date {today} instead")
        return today
    return parsed


def resolve_slot(raw_date: Optional[str], slot_number: Optional[int], tz_name: Optional[str] = None) -> SlotWindow:
    """
    Compute concrete start and end timestamps for a booking.

    Args:
        raw_date: Date text from the booking form
        slot_number: Slot index chosen by the candidate
        tz_name: Organizational time zone name

    Returns:
        SlotWindow localized to the organizational time zone
    """
    booking_date = resolve_booking_date(raw_date, tz_name)
    start, end = slot_window(slot_number)

    return SlotWindow(
        slot_number=slot_number,
        booking_date=booking_date,
        start_time=localize(booking_date, start, tz_name),
        end_time=localize(booking_date, end, tz_name),
    )
