"""
Pydantic schemas for organization endpoints.
Response field names follow the camelCase contract of the web client.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class OrganizationBaseSchema(BaseModel):
    """Base schema accepting snake_case field names and emitting camelCase."""

    class Config:
        from_attributes = True
        populate_by_name = True


class TokenResponse(OrganizationBaseSchema):
    """Schema for generate/regenerate token responses."""

    success: bool = Field(True, description="Operation success status")
    token: str = Field(..., description="Organization registration token")
    message: str = Field(..., description="Success message")


class MessageResponse(OrganizationBaseSchema):
    """Schema for plain success/failure responses."""

    success: bool = Field(..., description="Operation success status")
    message: str = Field(..., description="Result message")


class OrganizationStats(OrganizationBaseSchema):
    """Counts scoped to a single organization."""

    user_count: int = Field(0, ge=0, alias="userCount")
    test_count: int = Field(0, ge=0, alias="testCount")
    test_result_count: int = Field(0, ge=0, alias="testResultCount")


class StatsResponse(OrganizationBaseSchema):
    """Schema for the stats endpoint."""

    success: bool = True
    stats: OrganizationStats


class OrganizationSummary(OrganizationBaseSchema):
    """Organization details shown on the token management page."""

    sap_id: str = Field(..., alias="sapId")
    name: str
    contact_person: str = Field(..., alias="contactPerson")
    email: str
    organization_token: Optional[str] = Field(None, alias="organizationToken")
    is_token_active: bool = Field(..., alias="isTokenActive")
    token_generated_at: Optional[datetime] = Field(None, alias="tokenGeneratedAt")


class RegisteredUser(OrganizationBaseSchema):
    """Candidate registered under an organization."""

    sap_id: str = Field(..., alias="sapId")
    username: str
    email: str
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    category: Optional[str] = None


class TokenManagementResponse(OrganizationBaseSchema):
    """Schema for the token management overview."""

    success: bool = True
    organization: OrganizationSummary
    registered_users: List[RegisteredUser] = Field(default_factory=list, alias="registeredUsers")
    user_count: int = Field(0, alias="userCount")
