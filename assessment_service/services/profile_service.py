"""
Profile Service for Assessment Service.
Resolves the caller's account record and projects it per role.
"""

from typing import Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from assessment_service.db.database import db_manager
from assessment_service.models.assessment import User, SpecialUser, Organization, CallerRole
from assessment_service.schemas.identity import CallerIdentity
from assessment_service.schemas.profile import ProfileResolution, ProfileStatus

logger = logging.getLogger(__name__)

CANDIDATE_VIEW = "UserProfile"
SPECIAL_USER_VIEW = "SpecialUserProfile"

NOT_FOUND_MESSAGES = {
    CallerRole.CANDIDATE: "User not found",
    CallerRole.SPECIAL_USER: "Special user not found",
    CallerRole.ORGANIZATION: "Organization not found",
}


class ProfileService:
    """
    Role-dispatched profile lookup.

    When the subject claim is missing, one case-insensitive email lookup in
    the role's table is attempted before giving up.
    """

    def _find_by_email(self, session: Session, role: CallerRole, email: str) -> Optional[str]:
        """Return the identifier of the account with this email, if any."""
        lowered = email.lower()

        if role == CallerRole.CANDIDATE:
            user = session.query(User).filter(func.lower(User.email) == lowered).first()
            return user.sap_id if user else None
        if role == CallerRole.SPECIAL_USER:
            special_user = session.query(SpecialUser).filter(func.lower(SpecialUser.email) == lowered).first()
            return special_user.users_sap_id if special_user else None
        if role == CallerRole.ORGANIZATION:
            organization = session.query(Organization).filter(func.lower(Organization.email) == lowered).first()
            return organization.sap_id if organization else None
        return None

    def _resolve_subject(self, session: Session, caller: Optional[CallerIdentity]) -> Tuple[Optional[str], Optional[CallerRole]]:
        if caller is None:
            return None, None

        subject = caller.subject.strip() if caller.has_subject else None
        role = caller.role

        if subject is None and caller.email and role is not None:
            logger.warning(f"Subject claim is missing. Attempting to find account by email: {caller.email}")
            try:
                subject = self._find_by_email(session, role, caller.email)
                if subject:
                    logger.info(f"Found {role.value} by email. Identifier: {subject}")
            except Exception as e:
                logger.error(f"Error finding account by email: {e}")

        return subject, role

    def _find_candidate(self, session: Session, subject: str) -> Optional[User]:
        """Candidates are found by SAP id, or by account id for numeric subjects."""
        user = session.query(User).filter(User.sap_id == subject).first()
        if user is None and subject.isdigit():
            user = session.query(User).filter(User.id == int(subject)).first()
        return user

    def _load(self, session: Session, role: CallerRole, subject: str):
        if role == CallerRole.CANDIDATE:
            return self._find_candidate(session, subject)
        if role == CallerRole.SPECIAL_USER:
            return session.get(SpecialUser, subject)
        if role == CallerRole.ORGANIZATION:
            return session.get(Organization, subject)
        return None

    async def resolve(self, caller: Optional[CallerIdentity], include_organization: bool = False) -> ProfileResolution:
        """
        Resolve the caller's profile.

        Args:
            caller: Authenticated caller, or None
            include_organization: Load and project the organization record
                instead of only signalling the organization redirect

        Returns:
            ProfileResolution with status and projection
        """
        with db_manager.get_session() as session:
            subject, role = self._resolve_subject(session, caller)

            if not subject or role is None:
                logger.warning("User not authenticated or missing claims")
                return ProfileResolution(status=ProfileStatus.UNAUTHENTICATED, message="User not authenticated")

            if role == CallerRole.ORGANIZATION and not include_organization:
                return ProfileResolution(status=ProfileStatus.ORGANIZATION, role=role, subject=subject)

            if role not in NOT_FOUND_MESSAGES:
                logger.warning(f"No profile for role {role.value}")
                return ProfileResolution(
                    status=ProfileStatus.INVALID_ROLE, role=role, subject=subject, message="Invalid user role"
                )

            record = self._load(session, role, subject)
            if record is None:
                logger.info(f"{role.value} {subject} not found")
                return ProfileResolution(
                    status=ProfileStatus.NOT_FOUND, role=role, subject=subject, message=NOT_FOUND_MESSAGES[role]
                )

            if role == CallerRole.CANDIDATE:
                return ProfileResolution(
                    status=ProfileStatus.FOUND, role=role, subject=subject,
                    view=CANDIDATE_VIEW, profile=record.to_dict()
                )

            if role == CallerRole.SPECIAL_USER:
                return ProfileResolution(
                    status=ProfileStatus.FOUND, role=role, subject=subject,
                    view=SPECIAL_USER_VIEW, profile=record.to_dict()
                )

            organization = record.to_dict()
            return ProfileResolution(
                status=ProfileStatus.FOUND,
                role=role,
                subject=subject,
                profile={
                    "username": record.username,
                    "email": record.email,
                    "role": CallerRole.ORGANIZATION.value,
                },
                organization={
                    key: organization[key]
                    for key in (
                        "name", "contactPerson", "email", "phoneNumber",
                        "address", "website", "description", "logoUrl"
                    )
                }
            )


# Global service instance
profile_service = ProfileService()
