"""
Tests for caller resolution and role policy dependencies.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from assessment_service.api.dependencies import (
    check_service_health,
    get_client_ip,
    get_optional_caller,
    is_role_allowed,
    require_organization
)
from assessment_service.models.assessment import CallerRole
from assessment_service.schemas.identity import CallerIdentity


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestOptionalCaller:
    """Test cases for get_optional_caller."""

    @pytest.mark.asyncio
    async def test_valid_token(self, token_factory):
        caller = await get_optional_caller(bearer(token_factory(subject="42", role="Candidate")))

        assert caller.subject == "42"
        assert caller.role == CallerRole.CANDIDATE

    @pytest.mark.asyncio
    async def test_no_credentials(self):
        assert await get_optional_caller(None) is None

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        assert await get_optional_caller(bearer("invalid")) is None


class TestRequiredCallers:
    """Test cases for the raising dependencies."""

    @pytest.mark.asyncio
    async def test_organization_accepted(self):
        caller = CallerIdentity(subject="2000020000", role=CallerRole.ORGANIZATION)

        assert await require_organization(caller) is caller

    @pytest.mark.asyncio
    @pytest.mark.parametrize("caller", [
        None,
        CallerIdentity(subject=None, role=CallerRole.ORGANIZATION),
        CallerIdentity(subject="  ", role=CallerRole.ORGANIZATION),
    ])
    async def test_organization_unauthenticated(self, caller):
        with pytest.raises(HTTPException) as exc_info:
            await require_organization(caller)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Organization not authenticated"

    @pytest.mark.asyncio
    async def test_organization_wrong_role(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_organization(CallerIdentity(subject="1", role=CallerRole.CANDIDATE))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Organization access required"


class TestRolePolicy:
    """Test cases for is_role_allowed."""

    def test_allowed(self):
        assert is_role_allowed(CallerIdentity(subject="1", role=CallerRole.CANDIDATE), ["Candidate"])

    def test_not_allowed(self):
        assert not is_role_allowed(CallerIdentity(subject="1", role=CallerRole.SPECIAL_USER), ["Candidate"])

    def test_missing_caller_or_role(self):
        assert not is_role_allowed(None, ["Candidate"])
        assert not is_role_allowed(CallerIdentity(subject="1"), ["Candidate"])


class TestClientIP:
    """Test cases for get_client_ip."""

    @pytest.mark.asyncio
    async def test_forwarded_for(self):
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}

        assert await get_client_ip(request) == "203.0.113.5"

    @pytest.mark.asyncio
    async def test_real_ip(self):
        request = MagicMock()
        request.headers = {"X-Real-IP": "198.51.100.7"}

        assert await get_client_ip(request) == "198.51.100.7"

    @pytest.mark.asyncio
    async def test_direct_client(self):
        request = MagicMock()
        request.headers = {}
        request.client.host = "127.0.0.1"

        assert await get_client_ip(request) == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_unknown_client(self):
        request = MagicMock()
        request.headers = {}
        request.client = None

        assert await get_client_ip(request) == "unknown"


class TestServiceHealth:
    """Test cases for check_service_health."""

    @pytest.mark.asyncio
    async def test_healthy_without_redis(self, initialized_db_manager):
        redis = AsyncMock()
        redis.health_check = AsyncMock(return_value=False)

        with patch("assessment_service.api.dependencies.redis_manager", redis):
            health = await check_service_health()

        assert health == {"database": "healthy", "redis": "unhealthy", "overall": "healthy"}

    @pytest.mark.asyncio
    async def test_database_down(self):
        broken = MagicMock()
        broken.get_session.side_effect = RuntimeError("no database")
        redis = AsyncMock()
        redis.health_check = AsyncMock(return_value=True)

        with patch("assessment_service.api.dependencies.db_manager", broken), \
                patch("assessment_service.api.dependencies.redis_manager", redis):
            health = await check_service_health()

        assert health["database"] == "unhealthy"
        assert health["redis"] == "healthy"
        assert health["overall"] == "unhealthy"
