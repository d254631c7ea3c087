"""ConsentRecord model: append-only GDPR consent audit log."""

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.account import Account


class ConsentCategory(str, enum.Enum):
    """What a consent decision applies to."""

    ESSENTIAL = "essential"
    MARKETING = "marketing"
    RETENTION = "retention"
    COOKIES = "cookies"


class ConsentRecord(Base):
    """One consent event.

    Never updated. Rows disappear only when the owning account is erased.
    Current state per category is the latest record for that category; ``seq``
    orders records of one account that share a timestamp.
    """

    __tablename__ = "consent_records"
    __table_args__ = (UniqueConstraint("account_id", "seq"),)

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category: Mapped[ConsentCategory] = mapped_column(
        Enum(
            ConsentCategory,
            name="consent_category",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    # Per-account insertion order, starting at 1
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    # Origin of the decision
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    policy_version: Mapped[str] = mapped_column(String(20), default="1.0", nullable=False)

    # Relationships
    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="consent_records",
    )

    def __repr__(self) -> str:
        return f"<ConsentRecord {self.category.value}={self.granted}>"
