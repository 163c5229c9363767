"""
JWT Service for Assessment Service.
Validates bearer tokens and turns their claims into a caller identity.
"""

import jwt
from typing import Optional, Dict, Any
import logging

from assessment_service.core.config import config
from assessment_service.models.assessment import CallerRole
from assessment_service.schemas.identity import CallerIdentity

logger = logging.getLogger(__name__)


class JWTService:
    """
    JWT service for token validation.
    Tokens are issued by the authentication service; this service only reads them.
    """

    def __init__(self):
        self.jwt_secret = None
        self.jwt_algorithm = None

    async def _get_config(self):
        """Get JWT configuration."""
        if not self.jwt_secret:
            self.jwt_secret = await config.get_jwt_secret()
            self.jwt_algorithm = await config.get_jwt_algorithm()

    async def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode and validate JWT token.

        Args:
            token: JWT token to decode

        Returns:
            Token payload if valid, None otherwise
        """
        try:
            await self._get_config()

            return jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm]
            )

        except jwt.ExpiredSignatureError:
            logger.warning("JWT token has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {e}")
            return None
        except Exception as e:
            logger.error(f"JWT decoding error: {e}")
            return None

    @staticmethod
    def parse_role(value: Optional[str]) -> Optional[CallerRole]:
        """Map a role claim onto ``CallerRole``; unknown values become None."""
        if not value:
            return None
        try:
            return CallerRole(value)
        except ValueError:
            logger.warning(f"Unknown role claim: {value}")
            return None

    def identity_from_claims(self, payload: Dict[str, Any]) -> CallerIdentity:
        """
        Build a caller identity from decoded claims.

        Args:
            payload: Decoded token payload

        Returns:
            CallerIdentity with subject, role, email and username
        """
        subject = payload.get("sub")
        return CallerIdentity(
            subject=str(subject) if subject is not None else None,
            role=self.parse_role(payload.get("role")),
            email=payload.get("email"),
            username=payload.get("username"),
        )

    async def get_caller(self, token: str) -> Optional[CallerIdentity]:
        """
        Resolve the caller identity for a bearer token.

        Args:
            token: JWT token

        Returns:
            CallerIdentity if the token is valid, None otherwise
        """
        payload = await self.decode_token(token)
        if payload is None:
            return None
        return self.identity_from_claims(payload)


# Global service instance
jwt_service = JWTService()
