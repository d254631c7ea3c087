"""Submission model: one image + questionnaire analysis request and its result."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType

if TYPE_CHECKING:
    from app.models.account import Account


class Submission(Base):
    """Analysis submission owned by exactly one account.

    Rows are immutable once written; ``expires_at`` is creation time plus the
    configured retention window.
    """

    __tablename__ = "submissions"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Stored image
    blob_id: Mapped[str] = mapped_column(String(512), nullable=False)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    # Request
    body_region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    questionnaire: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    # Result
    result: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # Relationships
    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="submissions",
    )

    def __repr__(self) -> str:
        return f"<Submission {self.id} ({self.body_region})>"
