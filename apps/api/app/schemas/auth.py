"""Pydantic schemas for registration, login and tokens."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from app.models.account import Sex, SubscriptionStatus
from app.schemas.common import BaseSchema


class RegisterRequest(BaseSchema):
    """Schema for creating an account."""

    email: EmailStr
    # Minimum length is enforced by AccessControl so it stays configurable
    password: str = Field(..., max_length=128)
    gdpr_consent: bool = Field(default=False, description="Essential data-processing consent")
    locale: str | None = Field(default=None, max_length=50)
    region: str | None = Field(default=None, max_length=100)
    age: int | None = Field(default=None, ge=0, le=130)
    sex: Sex | None = None


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseSchema):
    refresh_token: str = Field(..., min_length=1)


class TokenResponse(BaseSchema):
    """Access/refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class AccountSummary(BaseSchema):
    """Public view of an account."""

    id: UUID
    email: str
    is_premium: bool
    subscription_status: SubscriptionStatus
    locale: str
    region: str | None
    age: int | None
    sex: Sex | None
    marketing_consent: bool
    retention_consent: bool
    consent_given_at: datetime | None
    deletion_scheduled_at: datetime | None
    created_at: datetime


class AuthResponse(TokenResponse):
    """Tokens plus the account they were issued for."""

    account: AccountSummary
