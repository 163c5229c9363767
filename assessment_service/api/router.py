"""
Main API router for Assessment Service.
Combines the page-style routers and the detailed health check.
"""

from fastapi import APIRouter
import logging

from assessment_service.api.dependencies import check_service_health
from assessment_service.api.booking import router as booking_router
from assessment_service.api.organization import router as organization_router
from assessment_service.api.user_profile import router as user_profile_router

logger = logging.getLogger(__name__)

router = APIRouter()

router.include_router(booking_router)
router.include_router(organization_router)
router.include_router(user_profile_router)


@router.get("/health/details", tags=["health"])
async def health_details():
    """
    Health of the database and Redis connections.

    Returns:
        Component health status
    """
    try:
        return await check_service_health()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {"database": "unknown", "redis": "unknown", "overall": "unhealthy"}
