"""
API dependencies for Assessment Service.
Resolves the bearer token into a caller identity and enforces role policies.
"""

from typing import Optional, List
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text
import logging

from assessment_service.core.config import config
from assessment_service.db.database import db_manager
from assessment_service.db.redis_client import redis_manager
from assessment_service.models.assessment import CallerRole
from assessment_service.schemas.identity import CallerIdentity
from assessment_service.services.jwt_service import jwt_service

logger = logging.getLogger(__name__)

# Page-style endpoints redirect instead of failing, so the scheme never errors on its own
security = HTTPBearer(auto_error=False)


async def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CallerIdentity]:
    """
    Resolve the caller from an optional bearer token.

    Args:
        credentials: HTTP Bearer token credentials, if sent

    Returns:
        CallerIdentity, or None when no valid token was sent
    """
    if credentials is None:
        return None

    caller = await jwt_service.get_caller(credentials.credentials)
    if caller is None:
        logger.info("Ignoring invalid bearer token")
    return caller


async def require_organization(
    caller: Optional[CallerIdentity] = Depends(get_optional_caller)
) -> CallerIdentity:
    """
    Require an organization caller with a subject.

    Returns:
        CallerIdentity whose subject is the organization SAP id

    Raises:
        HTTPException: 401 if unauthenticated, 403 for other roles
    """
    if caller is None or not caller.has_subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Organization not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if caller.role != CallerRole.ORGANIZATION:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization access required"
        )
    return caller


async def get_booking_allowed_roles() -> List[str]:
    """Roles allowed to reach the booking endpoint."""
    booking_config = await config.get_booking_config()
    return booking_config["allowed_roles"]


def is_role_allowed(caller: Optional[CallerIdentity], allowed_roles: List[str]) -> bool:
    """Check a caller's role against a configured role list."""
    if caller is None or caller.role is None:
        return False
    return caller.role.value in allowed_roles


async def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


async def check_service_health() -> dict:
    """
    Check the health of all service dependencies.

    Returns:
        Dictionary with health status of all components
    """
    health_status = {
        "database": "unknown",
        "redis": "unknown",
        "overall": "unknown"
    }

    try:
        with db_manager.get_session() as session:
            session.execute(text("SELECT 1"))
        health_status["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["database"] = "unhealthy"

    try:
        redis_healthy = await redis_manager.health_check()
        health_status["redis"] = "healthy" if redis_healthy else "unhealthy"
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        health_status["redis"] = "unhealthy"

    # Redis only backs optional locking and telemetry
    health_status["overall"] = "healthy" if health_status["database"] == "healthy" else "unhealthy"

    return health_status
