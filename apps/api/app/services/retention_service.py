"""GDPR retention: erasure, scheduled erasure and data export."""

import enum
import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import ConfirmationMismatchError
from app.integrations.base import BillingProvider, BlobStore
from app.models.account import Account
from app.models.consent_record import ConsentRecord
from app.models.submission import Submission
from app.services.submission_pipeline import account_folder

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION_PHRASE = "DELETE"

# Fields that never leave the system in an export
_ACCOUNT_PRIVATE_FIELDS = {"password_hash", "billing_customer_id", "billing_subscription_id"}
_CHILD_PRIVATE_FIELDS = {"account_id"}


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _export_row(row: Any, exclude: set[str]) -> dict[str, Any]:
    return {key: _serialize(value) for key, value in row.to_dict(exclude=exclude).items()}


class RetentionManager:
    """Owns the account erasure state machine over ``deletion_scheduled_at``.

    ``None`` means no erasure pending; a timestamp means erasure is due at
    that time. Nothing in the API process acts on a due timestamp; the
    retention worker does.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        blob_store: BlobStore,
        billing: BillingProvider,
    ) -> None:
        self.db = db
        self.settings = settings
        self.blob_store = blob_store
        self.billing = billing

    async def delete_now(self, account: Account, confirmation: str | None) -> None:
        """Irreversibly erase an account and everything it owns.

        External cleanup (subscription, images) is best-effort: failures are
        logged and local rows are deleted regardless.

        Raises:
            ConfirmationMismatchError: Unless ``confirmation`` is exactly "DELETE".
        """
        if confirmation != DELETE_CONFIRMATION_PHRASE:
            raise ConfirmationMismatchError(DELETE_CONFIRMATION_PHRASE)

        account_id = account.id

        if account.billing_subscription_id:
            try:
                await self.billing.cancel_subscription(account.billing_subscription_id)
            except Exception:
                logger.exception("Failed to cancel subscription during erasure: account=%s", account_id)

        try:
            await self.blob_store.delete_folder(account_folder(self.settings, account_id))
        except Exception:
            logger.exception("Failed to delete images during erasure: account=%s", account_id)

        counts = {
            "submissions": (
                await self.db.execute(delete(Submission).where(Submission.account_id == account_id))
            ).rowcount,
            "consent_records": (
                await self.db.execute(
                    delete(ConsentRecord).where(ConsentRecord.account_id == account_id)
                )
            ).rowcount,
        }
        await self.db.execute(delete(Account).where(Account.id == account_id))
        await self.db.commit()

        # Rows were removed with bulk deletes; drop the stale identity
        self.db.expunge_all()

        logger.info("Account erased: id=%s cascade=%s", account_id, counts)

    async def schedule_deletion(self, account: Account) -> datetime:
        """Schedule erasure after the grace period. Calling again restarts the period."""
        deletion_at = datetime.now(UTC) + timedelta(days=self.settings.deletion_grace_days)
        account.deletion_scheduled_at = deletion_at
        await self.db.commit()
        logger.info("Account erasure scheduled: id=%s at=%s", account.id, deletion_at.isoformat())
        return deletion_at

    async def cancel_scheduled_deletion(self, account: Account) -> None:
        account.deletion_scheduled_at = None
        await self.db.commit()
        logger.info("Account erasure canceled: id=%s", account.id)

    async def export_data(self, account: Account) -> dict[str, Any]:
        """Snapshot of everything stored about an account, minus internal fields."""
        submissions = await self.db.execute(
            select(Submission)
            .where(Submission.account_id == account.id)
            .order_by(Submission.created_at.desc())
        )
        consents = await self.db.execute(
            select(ConsentRecord)
            .where(ConsentRecord.account_id == account.id)
            .order_by(ConsentRecord.created_at.desc())
        )
        return {
            "account": _export_row(account, _ACCOUNT_PRIVATE_FIELDS),
            "submissions": [
                _export_row(row, _CHILD_PRIVATE_FIELDS) for row in submissions.scalars().all()
            ],
            "consents": [
                _export_row(row, _CHILD_PRIVATE_FIELDS) for row in consents.scalars().all()
            ],
            "exported_at": datetime.now(UTC).isoformat(),
        }

    # ------------------------------------------------------------------
    # Retention sweep (run by the worker, never in a request)
    # ------------------------------------------------------------------

    async def due_for_erasure(self, now: datetime | None = None) -> list[uuid.UUID]:
        """Ids of accounts whose scheduled erasure time has passed."""
        now = now or datetime.now(UTC)
        result = await self.db.execute(
            select(Account.id)
            .where(Account.deletion_scheduled_at.is_not(None))
            .where(Account.deletion_scheduled_at <= now)
        )
        return list(result.scalars().all())

    async def purge_expired_submissions(
        self,
        now: datetime | None = None,
        batch_size: int = 500,
    ) -> int:
        """Delete submissions past ``expires_at``: blob best-effort, then row."""
        now = now or datetime.now(UTC)
        result = await self.db.execute(
            select(Submission)
            .where(Submission.expires_at <= now)
            .order_by(Submission.expires_at)
            .limit(batch_size)
        )
        expired = list(result.scalars().all())

        for submission in expired:
            try:
                await self.blob_store.delete(submission.blob_id)
            except Exception:
                logger.warning(
                    "Could not delete expired blob %s", submission.blob_id, exc_info=True
                )
            await self.db.delete(submission)

        await self.db.commit()
        if expired:
            logger.info("Expired submissions purged: count=%d", len(expired))
        return len(expired)
