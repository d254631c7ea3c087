"""Pydantic schemas for request/response validation."""

from app.schemas.auth import (
    AccountSummary,
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from app.schemas.common import ErrorResponse, HealthResponse, MessageResponse, PaginatedResponse
from app.schemas.gdpr import (
    ConsentRecordResponse,
    ConsentStateResponse,
    ConsentUpdateRequest,
    DeleteAccountRequest,
    DeletionScheduledResponse,
)
from app.schemas.submission import SubmissionResponse, SubmissionSummary
from app.schemas.subscription import CheckoutResponse, SubscriptionStatusResponse, WebhookAck

__all__ = [
    "AccountSummary",
    "AuthResponse",
    "CheckoutResponse",
    "ConsentRecordResponse",
    "ConsentStateResponse",
    "ConsentUpdateRequest",
    "DeleteAccountRequest",
    "DeletionScheduledResponse",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PaginatedResponse",
    "RefreshRequest",
    "RegisterRequest",
    "SubmissionResponse",
    "SubmissionSummary",
    "SubscriptionStatusResponse",
    "TokenResponse",
    "WebhookAck",
]
