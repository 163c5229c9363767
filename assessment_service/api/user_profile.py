"""
User profile API endpoints for Assessment Service.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, RedirectResponse
from typing import Optional
import logging

from assessment_service.api.dependencies import get_optional_caller
from assessment_service.schemas.identity import CallerIdentity
from assessment_service.schemas.profile import ProfileStatus
from assessment_service.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/UserProfile", tags=["profile"])


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("")
@router.get("/Index")
async def profile_index(caller: Optional[CallerIdentity] = Depends(get_optional_caller)):
    """
    Profile page model for the calling user.

    Candidates and special users get their profile; organizations are sent
    to token management; anyone else is sent to login.
    """
    try:
        resolution = await profile_service.resolve(caller)

        if resolution.status == ProfileStatus.FOUND:
            return {"view": resolution.view, "profile": resolution.profile}

        if resolution.status == ProfileStatus.ORGANIZATION:
            return _redirect("/Organization/TokenManagement")

        if resolution.status == ProfileStatus.NOT_FOUND:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"success": False, "message": resolution.message}
            )

        return _redirect("/Auth/Login")

    except Exception as e:
        logger.error(f"Error retrieving user profile: {e}", exc_info=True)
        return _redirect("/")


@router.get("/GetUserInfo")
async def get_user_info(caller: Optional[CallerIdentity] = Depends(get_optional_caller)):
    """
    JSON profile projection for the calling user.

    Returns:
        ``{success: true, user, ...}`` or ``{success: false, message}``
    """
    try:
        resolution = await profile_service.resolve(caller, include_organization=True)

        if resolution.status != ProfileStatus.FOUND:
            return {"success": False, "message": resolution.message}

        response = {"success": True, "user": resolution.profile}
        if resolution.organization is not None:
            response["organization"] = resolution.organization
        return response

    except Exception as e:
        logger.error(f"Error retrieving user info: {e}", exc_info=True)
        return {"success": False, "message": "An error occurred"}
