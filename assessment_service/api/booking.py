"""
Booking API endpoints for Assessment Service.
Form-posted slot bookings answered with redirects for the web client.
"""

from fastapi import APIRouter, Depends, Form, Path, status
from fastapi.responses import RedirectResponse
from typing import Optional, List
from urllib.parse import urlencode
import logging

from assessment_service.api.dependencies import (
    get_optional_caller,
    get_booking_allowed_roles,
    get_client_ip,
    is_role_allowed
)
from assessment_service.schemas.booking import BookingOutcome
from assessment_service.schemas.identity import CallerIdentity
from assessment_service.services.booking_service import booking_service
from assessment_service.services.slot_schedule import DEFAULT_SLOT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/Booking", tags=["booking"])

LOGIN_REDIRECT = "/Auth/Login?returnUrl=/Test"
ROLE_NOT_ALLOWED_MESSAGE = "Your role is not allowed to book test slots"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def _error_redirect(message: str) -> RedirectResponse:
    return _redirect(f"/Test?{urlencode({'error': message})}")


def parse_slot(raw: Optional[str]) -> int:
    """Slot index from the form; missing or non-numeric values use the default slot."""
    if raw is None:
        return DEFAULT_SLOT
    try:
        return int(raw.strip())
    except ValueError:
        logger.info(f"Invalid slot value '{raw}', using slot {DEFAULT_SLOT}")
        return DEFAULT_SLOT


@router.post("/BookSlot/{test_id}")
async def book_slot(
    test_id: int = Path(..., description="ID of the test to book"),
    selected_date: Optional[str] = Form(None, alias="selectedDate"),
    selected_slot: Optional[str] = Form(None, alias="selectedSlot"),
    caller: Optional[CallerIdentity] = Depends(get_optional_caller),
    allowed_roles: List[str] = Depends(get_booking_allowed_roles),
    client_ip: str = Depends(get_client_ip)
):
    """
    Book a slot on a test for the calling candidate.

    Args:
        test_id: ID of the test
        selected_date: Date text chosen by the candidate
        selected_slot: Slot index (1-4)
        caller: Caller resolved from the bearer token
        allowed_roles: Roles allowed by configuration
        client_ip: Caller address, for logging

    Returns:
        303 redirect to the scheduled test on success, to login when
        unauthenticated, or to the test list with an error otherwise
    """
    logger.info(f"BookSlot request for test {test_id} from {client_ip}")

    if caller is None:
        return _redirect(LOGIN_REDIRECT)

    if not is_role_allowed(caller, allowed_roles):
        logger.warning(f"Role {caller.role} not in booking policy {allowed_roles}")
        return _error_redirect(ROLE_NOT_ALLOWED_MESSAGE)

    result = await booking_service.book_slot(
        test_id=test_id,
        selected_date_raw=selected_date,
        selected_slot=parse_slot(selected_slot),
        caller=caller
    )

    if result.outcome == BookingOutcome.BOOKED:
        params = {"message": result.message}
        params.update(result.confirmation.as_query_params())
        return _redirect(f"/Test/ScheduledTest/{test_id}?{urlencode(params)}")

    if result.outcome == BookingOutcome.UNAUTHENTICATED:
        return _redirect(LOGIN_REDIRECT)

    return _error_redirect(result.message)
