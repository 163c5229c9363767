"""
Organization Service for Assessment Service.
Statistics and the token management overview, scoped to one organization.
"""

from sqlalchemy import func
import logging

from assessment_service.db.database import db_manager
from assessment_service.models.assessment import Organization, User, Test, TestResult
from assessment_service.schemas.organization import (
    OrganizationStats,
    OrganizationSummary,
    RegisteredUser,
    TokenManagementResponse
)
from .organization_token_service import OrganizationNotFoundError

logger = logging.getLogger(__name__)


class OrganizationService:
    """
    Read-only views over an organization's users, tests and results.
    """

    async def get_stats(self, organization_sap_id: str) -> OrganizationStats:
        """
        Count users, tests and results belonging to an organization.

        Args:
            organization_sap_id: SAP id of the organization

        Returns:
            OrganizationStats with userCount, testCount and testResultCount
        """
        try:
            with db_manager.get_session() as session:
                user_count = session.query(func.count(User.id)).filter(
                    User.organization_sap_id == organization_sap_id
                ).scalar()

                test_count = session.query(func.count(Test.id)).filter(
                    Test.created_by_sap_id == organization_sap_id
                ).scalar()

                test_result_count = session.query(func.count(TestResult.id)).join(
                    User, User.sap_id == TestResult.user_sap_id
                ).filter(
                    User.organization_sap_id == organization_sap_id
                ).scalar()

                logger.info(
                    f"Stats for organization {organization_sap_id}: users={user_count}, "
                    f"tests={test_count}, results={test_result_count}"
                )

                return OrganizationStats(
                    user_count=user_count or 0,
                    test_count=test_count or 0,
                    test_result_count=test_result_count or 0
                )

        except Exception as e:
            logger.error(f"Error getting stats for organization {organization_sap_id}: {e}")
            raise

    async def get_token_management(self, organization_sap_id: str) -> TokenManagementResponse:
        """
        Get the organization's token state and the users registered under it.

        Args:
            organization_sap_id: SAP id of the organization

        Returns:
            TokenManagementResponse

        Raises:
            OrganizationNotFoundError: If the organization does not exist
        """
        with db_manager.get_session() as session:
            organization = session.get(Organization, organization_sap_id)
            if organization is None:
                raise OrganizationNotFoundError(f"Organization not found: {organization_sap_id}")

            users = session.query(User).filter(
                User.organization_sap_id == organization_sap_id
            ).order_by(User.id).all()

            registered_users = [RegisteredUser.model_validate(user) for user in users]

            return TokenManagementResponse(
                organization=OrganizationSummary.model_validate(organization),
                registered_users=registered_users,
                user_count=len(registered_users)
            )


# Global service instance
organization_service = OrganizationService()
