"""
Organization API endpoints for Assessment Service.
Token lifecycle, statistics and the token management overview.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
import logging

from assessment_service.api.dependencies import require_organization
from assessment_service.schemas.identity import CallerIdentity
from assessment_service.schemas.organization import (
    TokenResponse,
    MessageResponse,
    StatsResponse,
    TokenManagementResponse
)
from assessment_service.services.organization_service import organization_service
from assessment_service.services.organization_token_service import (
    organization_token_service,
    OrganizationNotFoundError
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/Organization", tags=["organization"])


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=MessageResponse(success=False, message=message).model_dump()
    )


@router.post("/api/generate-token", response_model=TokenResponse)
async def generate_token(caller: CallerIdentity = Depends(require_organization)):
    """
    Get the organization's registration token, issuing one if needed.

    Returns:
        Token and success message
    """
    try:
        token = await organization_token_service.generate_token(caller.subject)
        return TokenResponse(token=token, message="Organization token generated successfully")
    except Exception as e:
        logger.error(f"Error generating organization token: {e}", exc_info=True)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to generate token. Please try again.")


@router.post("/api/regenerate-token", response_model=TokenResponse)
async def regenerate_token(caller: CallerIdentity = Depends(require_organization)):
    """
    Replace the organization's registration token.

    Returns:
        New token and success message
    """
    try:
        token = await organization_token_service.regenerate_token(caller.subject)
        return TokenResponse(
            token=token,
            message="Organization token regenerated successfully. The old token is now invalid."
        )
    except Exception as e:
        logger.error(f"Error regenerating organization token: {e}", exc_info=True)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to regenerate token. Please try again.")


@router.post("/api/deactivate-token", response_model=MessageResponse)
async def deactivate_token(caller: CallerIdentity = Depends(require_organization)):
    """
    Deactivate the organization's registration token.

    Returns:
        Success message, or 400 if the token could not be deactivated
    """
    try:
        deactivated = await organization_token_service.deactivate_token(caller.subject)
    except Exception as e:
        logger.error(f"Error deactivating organization token: {e}", exc_info=True)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to deactivate token. Please try again.")

    if not deactivated:
        return _failure(status.HTTP_400_BAD_REQUEST, "Failed to deactivate token.")

    return MessageResponse(
        success=True,
        message="Organization token deactivated successfully. New users cannot register with this token."
    )


@router.get("/api/stats", response_model=StatsResponse)
async def get_stats(caller: CallerIdentity = Depends(require_organization)):
    """
    Get user, test and result counts for the organization.

    Returns:
        Organization statistics
    """
    try:
        stats = await organization_service.get_stats(caller.subject)
        return StatsResponse(stats=stats)
    except Exception as e:
        logger.error(f"Error getting organization stats: {e}", exc_info=True)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to get statistics. Please try again.")


@router.get("/TokenManagement", response_model=TokenManagementResponse)
async def token_management(caller: CallerIdentity = Depends(require_organization)):
    """
    Get the organization's token state and registered users.

    Returns:
        Token management overview, or 404 if the organization does not exist
    """
    try:
        return await organization_service.get_token_management(caller.subject)
    except OrganizationNotFoundError:
        return _failure(status.HTTP_404_NOT_FOUND, "Organization not found")
    except Exception as e:
        logger.error(f"Error loading token management page: {e}", exc_info=True)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load token management. Please try again.")
