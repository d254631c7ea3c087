"""SQLAlchemy models."""

from app.models.account import Account, Sex, SubscriptionStatus
from app.models.base import Base
from app.models.consent_record import ConsentCategory, ConsentRecord
from app.models.submission import Submission

__all__ = [
    # Base
    "Base",
    # Accounts
    "Account",
    "Sex",
    "SubscriptionStatus",
    # Submissions
    "Submission",
    # Consent
    "ConsentCategory",
    "ConsentRecord",
]
