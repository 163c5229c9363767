"""
Configuration management for the Assessment Service.
Uses Zero Python SDK for secure configuration, with environment overrides.
"""

import os
import asyncio
import concurrent.futures
from urllib.parse import quote_plus
from typing import Dict, Any, Optional
import logging
from zero_python_sdk import zero

logger = logging.getLogger(__name__)


class ZeroSecretsManager:
    """
    Zero secrets client using the official Zero Python SDK.
    Secrets are fetched once and cached for the lifetime of the process.
    """

    def __init__(self, zero_token: Optional[str], caller_name: str = "assessment"):
        self.zero_token = zero_token
        self.caller_name = caller_name
        self._cache: Dict[str, Any] = {}
        self._secrets = None

    async def _fetch_secrets(self):
        """Fetch secrets from Zero if not already cached."""
        if self._secrets is not None:
            return

        if not self.zero_token:
            self._secrets = {}
            return

        try:
            loop = asyncio.get_running_loop()
            with concurrent.futures.ThreadPoolExecutor() as executor:
                self._secrets = await loop.run_in_executor(
                    executor,
                    lambda: zero(
                        token=self.zero_token,
                        pick=["assessment"],
                        caller_name=self.caller_name
                    ).fetch()
                )
            logger.info("Successfully fetched secrets from Zero")
        except Exception as e:
            logger.error(f"Failed to fetch secrets from Zero: {e}")
            self._secrets = {}

    def _normalize_key(self, key: str) -> str:
        """Normalize a key to lowercase and replace underscores with hyphens."""
        return key.lower().replace("_", "-")

    async def get_secret(self, key: str) -> Optional[str]:
        """
        Get a secret value by key.

        The process environment wins over Zero so deployments and tests can
        override individual values.

        Args:
            key: The secret key to retrieve (e.g. ``JWT_SECRET``)

        Returns:
            Secret value or None if not found
        """
        env_value = os.getenv(key.upper())
        if env_value is not None:
            return env_value

        normalized = self._normalize_key(key)
        if normalized in self._cache:
            return self._cache[normalized]

        try:
            await self._fetch_secrets()
            secret_value = self._secrets.get("assessment", {}).get(normalized)

            if secret_value:
                self._cache[normalized] = secret_value

            return secret_value

        except Exception as e:
            logger.error(f"Failed to fetch secret {key}: {e}")
            return None

    async def close(self):
        """Drop cached secrets."""
        self._cache.clear()
        self._secrets = None


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class AssessmentConfig:
    """
    Assessment Service configuration manager.
    Every getter falls back to a development default.
    """

    def __init__(self):
        self.zero_token = os.getenv("ZERO_TOKEN")
        if not self.zero_token:
            logger.info("ZERO_TOKEN not set, using environment and defaults only")

        self.secrets_manager = ZeroSecretsManager(self.zero_token)

    async def get_database_url(self) -> str:
        """Get the database connection URL."""
        explicit_url = await self.secrets_manager.get_secret("DATABASE_URL")
        if explicit_url:
            return explicit_url

        host = await self.secrets_manager.get_secret("DB_HOST") or "localhost"
        port = await self.secrets_manager.get_secret("DB_PORT") or "5432"
        name = await self.secrets_manager.get_secret("DB_NAME") or "assessment"
        user = await self.secrets_manager.get_secret("DB_USER") or "assessment"
        password = await self.secrets_manager.get_secret("DB_PASSWORD") or "assessment123"

        return f"postgresql://{user}:{quote_plus(password)}@{host}:{port}/{name}"

    async def get_database_config(self) -> Dict[str, Any]:
        """Get connection pool configuration."""
        return {
            "pool_size": int(await self.secrets_manager.get_secret("DB_POOL_SIZE") or "10"),
            "max_overflow": int(await self.secrets_manager.get_secret("DB_MAX_OVERFLOW") or "20"),
            "pool_timeout": int(await self.secrets_manager.get_secret("DB_POOL_TIMEOUT") or "30"),
            "pool_recycle": int(await self.secrets_manager.get_secret("DB_POOL_RECYCLE") or "3600"),
        }

    async def get_redis_url(self) -> str:
        """Get the Redis connection URL."""
        host = await self.secrets_manager.get_secret("REDIS_HOST") or "localhost"
        port = await self.secrets_manager.get_secret("REDIS_PORT") or "6379"
        password = await self.secrets_manager.get_secret("REDIS_PASSWORD")
        use_tls = _as_bool(await self.secrets_manager.get_secret("REDIS_USE_TLS"))

        protocol = "rediss://" if use_tls else "redis://"

        if password:
            return f"{protocol}:{quote_plus(password)}@{host}:{port}"
        return f"{protocol}{host}:{port}"

    async def get_jwt_secret(self) -> str:
        """Get JWT secret key."""
        return await self.secrets_manager.get_secret("JWT_SECRET") or "your-secret-key-change-in-production"

    async def get_jwt_algorithm(self) -> str:
        """Get JWT algorithm."""
        return await self.secrets_manager.get_secret("JWT_ALGORITHM") or "HS256"

    async def get_organization_timezone(self) -> str:
        """Get the organizational time zone name used for booking dates."""
        return await self.secrets_manager.get_secret("ORGANIZATION_TIMEZONE") or "Asia/Kolkata"

    async def get_booking_config(self) -> Dict[str, Any]:
        """Get booking-specific configuration."""
        allowed_roles = await self.secrets_manager.get_secret("BOOKING_ALLOWED_ROLES") or "Candidate"
        return {
            "allowed_roles": [role.strip() for role in allowed_roles.split(",") if role.strip()],
            "expose_error_details": _as_bool(
                await self.secrets_manager.get_secret("EXPOSE_ERROR_DETAILS")
            ),
        }

    async def get_consistency_config(self) -> Dict[str, Any]:
        """Get locking configuration for booking commits."""
        return {
            "lock_timeout_seconds": int(await self.secrets_manager.get_secret("LOCK_TIMEOUT_SECONDS") or "30"),
            "lock_blocking_timeout_seconds": int(
                await self.secrets_manager.get_secret("LOCK_BLOCKING_TIMEOUT_SECONDS") or "10"
            ),
            "enable_distributed_locks": _as_bool(
                await self.secrets_manager.get_secret("ENABLE_DISTRIBUTED_LOCKS")
            ),
        }

    async def get_default_organization_password(self) -> str:
        """Get the initial password for the default organization account."""
        return await self.secrets_manager.get_secret("DEFAULT_ORGANIZATION_PASSWORD") or "tcs123"

    async def get_log_level(self) -> str:
        """Get the root log level."""
        return (await self.secrets_manager.get_secret("LOG_LEVEL") or "INFO").upper()

    async def close(self):
        """Close the secrets manager."""
        await self.secrets_manager.close()


# Global config instance
config = AssessmentConfig()
