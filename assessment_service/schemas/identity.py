"""
Caller identity schema.
Built from bearer token claims and passed explicitly into service operations.
"""

from pydantic import BaseModel, Field
from typing import Optional

from assessment_service.models.assessment import CallerRole


class CallerIdentity(BaseModel):
    """Authenticated caller as seen by the services."""

    subject: Optional[str] = Field(None, description="External identifier from the `sub` claim")
    role: Optional[CallerRole] = Field(None, description="Caller role, None when unknown")
    email: Optional[str] = Field(None, description="Email claim")
    username: Optional[str] = Field(None, description="Display name claim")

    @property
    def has_subject(self) -> bool:
        return bool(self.subject and self.subject.strip())
