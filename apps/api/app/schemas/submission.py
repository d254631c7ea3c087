"""Pydantic schemas for analysis submissions."""

from datetime import datetime
from typing import Any
from uuid import UUID

from app.schemas.common import BaseSchema


class SubmissionSummary(BaseSchema):
    """Submission as shown in the history list."""

    id: UUID
    body_region: str | None
    result: dict[str, Any]
    is_premium: bool
    created_at: datetime


class SubmissionResponse(SubmissionSummary):
    """Full submission detail."""

    image_url: str
    questionnaire: dict[str, Any]
    expires_at: datetime
