"""Application error taxonomy.

Services raise these; ``app.main`` renders them as JSON with the matching
HTTP status. Each error carries a stable machine-readable ``code``.
"""

from typing import Any


class AppError(Exception):
    """Base class for all expected application errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response body."""
        return {"detail": self.message, "code": self.code}


# =============================================================================
# 400 - malformed or missing input
# =============================================================================


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class DuplicateEmailError(ValidationError):
    code = "duplicate_email"

    def __init__(self) -> None:
        super().__init__("Email already registered")


class WeakPasswordError(ValidationError):
    code = "weak_password"

    def __init__(self, min_length: int) -> None:
        super().__init__(f"Password must be at least {min_length} characters long")


class ImageValidationError(ValidationError):
    code = "invalid_image"


class ConfirmationMismatchError(ValidationError):
    code = "confirmation_mismatch"

    def __init__(self, phrase: str) -> None:
        super().__init__(f'Please confirm deletion by sending "{phrase}"')


class ConsentNotGivenError(ValidationError):
    """Registration submitted without the GDPR consent box ticked."""

    code = "consent_required"

    def __init__(self) -> None:
        super().__init__("GDPR consent is required to register")


class NoActiveSubscriptionError(ValidationError):
    code = "no_active_subscription"

    def __init__(self) -> None:
        super().__init__("No active subscription")


class SignatureInvalidError(ValidationError):
    code = "invalid_signature"

    def __init__(self) -> None:
        super().__init__("Invalid webhook signature")


# =============================================================================
# 401 - missing, expired or invalid credentials
# =============================================================================


class AuthError(AppError):
    status_code = 401
    code = "not_authenticated"


class InvalidCredentialsError(AuthError):
    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class TokenExpiredError(AuthError):
    code = "token_expired"

    def __init__(self) -> None:
        super().__init__("Token has expired")


class InvalidTokenError(AuthError):
    code = "invalid_token"

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


# =============================================================================
# 403 - authenticated but not allowed
# =============================================================================


class AuthorizationError(AppError):
    status_code = 403
    code = "forbidden"


class PremiumRequiredError(AuthorizationError):
    code = "premium_required"

    def __init__(self) -> None:
        super().__init__("Premium subscription required")


class ConsentRequiredError(AuthorizationError):
    code = "consent_required"

    def __init__(self, message: str = "GDPR consent required") -> None:
        super().__init__(message)


# =============================================================================
# 404 / 429
# =============================================================================


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class RateLimitError(AppError):
    status_code = 429
    code = "rate_limited"


# =============================================================================
# 500 - third-party failures (message sanitized outside development)
# =============================================================================


class UpstreamError(AppError):
    status_code = 500
    code = "upstream_error"
    public_message = "An upstream service failed. Please try again."


class UploadError(UpstreamError):
    code = "upload_failed"


class AnalysisError(UpstreamError):
    code = "analysis_failed"


class BillingError(UpstreamError):
    code = "billing_failed"
