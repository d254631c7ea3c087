"""Pydantic schemas for GDPR consent, erasure and export."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.models.consent_record import ConsentCategory
from app.schemas.common import BaseSchema


class ConsentUpdateRequest(BaseSchema):
    """Consent change submitted by the user."""

    category: ConsentCategory = Field(..., description="marketing, retention or cookies")
    granted: bool


class ConsentRecordResponse(BaseSchema):
    id: UUID
    category: ConsentCategory
    granted: bool
    policy_version: str
    ip_address: str | None
    user_agent: str | None
    created_at: datetime


class ConsentStateResponse(BaseSchema):
    """Current decision per category after a change."""

    message: str
    consents: dict[ConsentCategory, bool]


class DeleteAccountRequest(BaseSchema):
    confirmation: str | None = Field(default=None, description='Must be exactly "DELETE"')


class DeletionScheduledResponse(BaseSchema):
    message: str
    deletion_date: datetime
