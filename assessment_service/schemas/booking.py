"""
Pydantic schemas for the booking workflow.
Outcomes are returned as values and mapped to redirects by the router.
"""

from pydantic import BaseModel, Field
from typing import Optional, Any
from datetime import date, datetime
from enum import Enum


class BookingOutcome(str, Enum):
    """Result of a booking attempt."""
    BOOKED = "booked"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    FAILED = "failed"


class BookingConfirmation(BaseModel):
    """Short-lived "just booked" value handed to the next page view."""

    test_booked: bool = Field(True, description="A booking was just made")
    booked_test_id: int = Field(..., gt=0, description="Test that was booked")

    def as_query_params(self) -> dict:
        return {
            "testBooked": "true" if self.test_booked else "false",
            "bookedTestId": str(self.booked_test_id),
        }


class SlotWindow(BaseModel):
    """Concrete start/end of a booked slot in the organizational time zone."""

    slot_number: Optional[int]
    booking_date: date
    start_time: datetime
    end_time: datetime


class BookingResult(BaseModel):
    """Outcome of ``BookingService.book_slot``."""

    outcome: BookingOutcome
    message: str
    test_id: int
    booking: Optional[Any] = Field(None, description="Created TestBooking on success")
    confirmation: Optional[BookingConfirmation] = None

    class Config:
        arbitrary_types_allowed = True

    @property
    def succeeded(self) -> bool:
        return self.outcome == BookingOutcome.BOOKED
