"""
Pydantic schemas for profile resolution.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from enum import Enum

from assessment_service.models.assessment import CallerRole


class ProfileStatus(str, Enum):
    """How a profile request resolved."""
    FOUND = "found"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    ORGANIZATION = "organization"
    INVALID_ROLE = "invalid_role"


class ProfileResolution(BaseModel):
    """Outcome of resolving the caller's profile."""

    status: ProfileStatus
    role: Optional[CallerRole] = None
    subject: Optional[str] = Field(None, description="Identifier after email fallback")
    view: Optional[str] = Field(None, description="Profile view name for the web client")
    profile: Optional[Dict[str, Any]] = None
    organization: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
