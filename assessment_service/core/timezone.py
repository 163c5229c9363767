"""
Organizational clock helpers.

Booking dates and slot times are expressed in one fixed organizational time
zone (configured, default Asia/Kolkata), never in the host's local time.
"""

from datetime import date, datetime, time
from typing import Optional
import logging

import pytz

logger = logging.getLogger(__name__)

DEFAULT_ORGANIZATION_TIMEZONE = "Asia/Kolkata"


def get_organization_timezone(name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Return the pytz zone for ``name``, falling back to the default organizational zone."""
    try:
        return pytz.timezone(name or DEFAULT_ORGANIZATION_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown time zone {name!r}, using {DEFAULT_ORGANIZATION_TIMEZONE}")
        return pytz.timezone(DEFAULT_ORGANIZATION_TIMEZONE)


def organization_now(tz_name: Optional[str] = None) -> datetime:
    """Current aware datetime in the organizational time zone."""
    return datetime.now(pytz.UTC).astimezone(get_organization_timezone(tz_name))


def organization_today(tz_name: Optional[str] = None) -> date:
    """Today's calendar date in the organizational time zone."""
    return organization_now(tz_name).date()


def localize(day: date, at: time, tz_name: Optional[str] = None) -> datetime:
    """
    Combine a calendar date and a wall-clock time in the organizational zone.

    Slot times are wall-clock values, so the result is localized rather than
    converted.
    """
    tz = get_organization_timezone(tz_name)
    return tz.localize(datetime.combine(day, at))
