"""
ZipMetro Backend — Account Schemas
====================================

What:  Request/response models for /api/users/me and its sub-resources.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from zipmetro.schemas.common import EntityId


class NotificationPreferences(BaseModel):
    """
    What:  Which channels a customer wants order updates on.
    Defaults (sms and email on, push off) apply when nothing is stored yet.
    """
    sms: bool = Field(default=True, description="Text message updates")
    email: bool = Field(default=True, description="Email updates")
    push: bool = Field(default=False, description="Push notifications")

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, description="Given name")
    last_name: Optional[str] = Field(default=None, description="Family name")
    phone: Optional[str] = Field(default=None, description="Contact phone")
    dob: Optional[str] = Field(default=None, description="Date of birth, YYYY-MM-DD")


class IdSubmission(BaseModel):
    """
    What:  Identity document submission for age verification.
    How:   `id_image_path` is the relative path returned by POST /api/upload/id.
    """
    first_name: Optional[str] = Field(default=None, description="Name as on the ID")
    last_name: Optional[str] = Field(default=None, description="Surname as on the ID")
    dob: Optional[str] = Field(default=None, description="Date of birth as on the ID")
    id_type: Optional[str] = Field(default=None, description="Document kind, e.g. drivers_license")
    id_image_path: Optional[str] = Field(default=None, description="Stored upload path")
    consent: bool = Field(default=False, description="Consent to ID processing")


class ProfileResponse(BaseModel):
    """
    What:  The caller's own account. Never includes the password hash.
    Who:   GET/PUT /api/users/me
    """
    id: EntityId = Field(description="User identifier")
    email: str = Field(description="Login email")
    first_name: Optional[str] = Field(default=None, description="Given name")
    last_name: Optional[str] = Field(default=None, description="Family name")
    phone: Optional[str] = Field(default=None, description="Contact phone")
    dob: Optional[str] = Field(default=None, description="Date of birth")
    id_verified: bool = Field(default=False, description="ID checked by staff")
    role: str = Field(description="customer or admin")
    created_at: Optional[datetime] = Field(default=None, description="Account creation (UTC)")
    notification_preferences: Optional[NotificationPreferences] = Field(
        default=None,
        description="Channel preferences (GET only)",
    )

    model_config = {"from_attributes": True}
