"""Account model: identity, billing and consent state for an end user."""

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.consent_record import ConsentRecord
    from app.models.submission import Submission


class SubscriptionStatus(str, enum.Enum):
    """Billing subscription state mirrored from the payment processor."""

    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    INACTIVE = "inactive"


class Sex(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Account(Base):
    """A registered user.

    ``is_premium`` and ``subscription_status`` are only written together,
    from billing events; ``is_premium`` is true iff the status is active.
    """

    __tablename__ = "accounts"

    # Identity
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Billing
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    billing_customer_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    billing_subscription_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(
            SubscriptionStatus,
            name="subscription_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=SubscriptionStatus.INACTIVE,
        nullable=False,
    )

    # Profile
    locale: Mapped[str] = mapped_column(String(50), default="English", nullable=False)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sex: Mapped[Sex | None] = mapped_column(
        Enum(Sex, name="sex", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )

    # Consent (denormalized from the consent ledger for fast checks)
    consent_given_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    marketing_consent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    retention_consent: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Lifecycle
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    deletion_scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    # Relationships
    submissions: Mapped[list["Submission"]] = relationship(
        "Submission",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    consent_records: Mapped[list["ConsentRecord"]] = relationship(
        "ConsentRecord",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Account {self.id} ({self.subscription_status.value})>"
