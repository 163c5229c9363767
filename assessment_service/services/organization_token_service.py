"""
Organization Token Service for Assessment Service.
Issues, rotates and validates the token users register with.
"""

import secrets
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import or_
import logging

from assessment_service.core.config import config
from assessment_service.db.database import db_manager
from assessment_service.models.assessment import Organization, CallerRole
from .password_manager import password_manager

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "ORG_"

DEFAULT_ORGANIZATION_SAP_ID = "1000010000"
DEFAULT_ORGANIZATION_NAME = "TCS"


class OrganizationNotFoundError(Exception):
    """Raised when an organization SAP id does not exist."""
    pass


class InvalidOrganizationTokenError(Exception):
    """Raised when a registration token is unknown or inactive."""
    pass


def generate_unique_token() -> str:
    """Random URL-safe token, 32 bytes of entropy, recognizable prefix."""
    return f"{TOKEN_PREFIX}{secrets.token_urlsafe(32)}"


class OrganizationTokenService:
    """
    Lifecycle of organization registration tokens.
    An organization holds at most one token; only an active token validates.
    """

    async def generate_token(self, organization_sap_id: str) -> str:
        """
        Get the organization's active token, issuing one if none exists.

        Args:
            organization_sap_id: SAP id of the organization

        Returns:
            Active organization token

        Raises:
            OrganizationNotFoundError: If the organization does not exist
        """
        try:
            with db_manager.get_transaction_session() as session:
                organization = session.get(Organization, organization_sap_id)
                if organization is None:
                    raise OrganizationNotFoundError(f"Organization not found: {organization_sap_id}")

                if organization.organization_token and organization.is_token_active:
                    logger.info(f"Returning existing token for organization {organization_sap_id}")
                    return organization.organization_token

                token = self._assign_new_token(organization)
                session.commit()

                logger.info(f"Generated new token for organization {organization_sap_id}")
                return token

        except OrganizationNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error generating token for organization {organization_sap_id}: {e}")
            raise

    async def regenerate_token(self, organization_sap_id: str) -> str:
        """
        Replace the organization's token with a new one.

        The previous value stops validating as soon as the transaction commits.

        Args:
            organization_sap_id: SAP id of the organization

        Returns:
            New organization token

        Raises:
            OrganizationNotFoundError: If the organization does not exist
        """
        try:
            with db_manager.get_transaction_session() as session:
                organization = session.get(Organization, organization_sap_id)
                if organization is None:
                    raise OrganizationNotFoundError(f"Organization not found: {organization_sap_id}")

                token = self._assign_new_token(organization)
                session.commit()

                logger.info(f"Regenerated token for organization {organization_sap_id}")
                return token

        except OrganizationNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error regenerating token for organization {organization_sap_id}: {e}")
            raise

    async def deactivate_token(self, organization_sap_id: str) -> bool:
        """
        Mark the organization's token inactive. The value is kept as history.

        Args:
            organization_sap_id: SAP id of the organization

        Returns:
            True if deactivated, False if the organization does not exist or the update failed
        """
        try:
            with db_manager.get_transaction_session() as session:
                organization = session.get(Organization, organization_sap_id)
                if organization is None:
                    logger.warning(f"Cannot deactivate token, organization {organization_sap_id} not found")
                    return False

                organization.is_token_active = False
                session.commit()

                logger.info(f"Deactivated token for organization {organization_sap_id}")
                return True

        except Exception as e:
            logger.error(f"Error deactivating token for organization {organization_sap_id}: {e}")
            return False

    async def validate_token(self, token: Optional[str]) -> Optional[Organization]:
        """
        Find the organization whose active token matches.

        Args:
            token: Token supplied at registration

        Returns:
            Organization, or None for blank, unknown or inactive tokens
        """
        if token is None or not token.strip():
            return None

        try:
            with db_manager.get_session() as session:
                organization = session.query(Organization).filter(
                    Organization.organization_token == token.strip(),
                    Organization.is_token_active.is_(True)
                ).first()

                if organization:
                    logger.info(f"Valid token found for organization {organization.sap_id}")
                return organization

        except Exception as e:
            logger.error(f"Error validating organization token: {e}")
            return None

    async def get_or_create_default_organization(self) -> Organization:
        """
        Get the default organization, creating it when missing.

        Users who register without a token are assigned to it. It is created
        with an inactive token and a bcrypt-hashed default password.

        Returns:
            The default Organization
        """
        try:
            with db_manager.get_transaction_session() as session:
                organization = session.query(Organization).filter(
                    or_(
                        Organization.name == DEFAULT_ORGANIZATION_NAME,
                        Organization.sap_id == DEFAULT_ORGANIZATION_SAP_ID
                    )
                ).first()

                if organization is None:
                    default_password = await config.get_default_organization_password()
                    organization = Organization(
                        sap_id=DEFAULT_ORGANIZATION_SAP_ID,
                        name=DEFAULT_ORGANIZATION_NAME,
                        email="TCS@gmail.com",
                        contact_person="TCS Administrator",
                        username="TCS",
                        password_hash=password_manager.hash_password(default_password),
                        description="TCS - Default organization for users without organization tokens",
                        role=CallerRole.ORGANIZATION.value,
                        created_at=datetime.now(timezone.utc),
                        is_token_active=False
                    )
                    session.add(organization)
                    session.commit()
                    session.refresh(organization)

                    logger.info("Created TCS as default organization")

                return organization

        except Exception as e:
            logger.error(f"Error getting or creating default organization: {e}")
            raise

    async def resolve_registration_organization(self, token: Optional[str]) -> Organization:
        """
        Pick the organization a registering user belongs to.

        Args:
            token: Optional organization token from the registration form

        Returns:
            Token's organization, or the default organization when no token is given

        Raises:
            InvalidOrganizationTokenError: If a non-blank token does not validate
        """
        if token is None or not token.strip():
            return await self.get_or_create_default_organization()

        organization = await self.validate_token(token)
        if organization is None:
            raise InvalidOrganizationTokenError("Invalid or inactive organization token")
        return organization

    def _assign_new_token(self, organization: Organization) -> str:
        token = generate_unique_token()
        organization.organization_token = token
        organization.token_generated_at = datetime.now(timezone.utc)
        organization.is_token_active = True
        return token


# Global service instance
organization_token_service = OrganizationTokenService()
