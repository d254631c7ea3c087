"""Consent ledger: append-only GDPR consent log and derived consent state."""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import ConsentRequiredError, ValidationError
from app.models.account import Account
from app.models.consent_record import ConsentCategory, ConsentRecord

logger = logging.getLogger(__name__)

# Categories a user may change after registration. Essential consent is given
# once at sign-up and withdrawn by deleting the account.
USER_MUTABLE_CATEGORIES = frozenset(
    {ConsentCategory.MARKETING, ConsentCategory.RETENTION, ConsentCategory.COOKIES}
)


@dataclass(frozen=True)
class RequestOrigin:
    """Where a consent decision came from."""

    ip_address: str | None = None
    user_agent: str | None = None


def resolve_latest(records: Iterable[ConsentRecord]) -> dict[ConsentCategory, bool]:
    """Reduce consent records to the current decision per category.

    The record with the highest ``created_at`` wins. On equal timestamps the
    one appearing later in ``records`` wins, so callers pass records in
    insertion order.
    """
    latest: dict[ConsentCategory, tuple[datetime, int, bool]] = {}
    for position, record in enumerate(records):
        key = (record.created_at, position)
        current = latest.get(record.category)
        if current is None or key >= current[:2]:
            latest[record.category] = (record.created_at, position, record.granted)
    return {category: entry[2] for category, entry in latest.items()}


async def next_seq(db: AsyncSession, account_id: uuid.UUID) -> int:
    """Next per-account insertion number for a consent record."""
    result = await db.execute(
        select(func.coalesce(func.max(ConsentRecord.seq), 0)).where(
            ConsentRecord.account_id == account_id
        )
    )
    return result.scalar_one() + 1


class ConsentLedger:
    """Records consent events and answers consent questions for an account."""

    def __init__(self, db: AsyncSession, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    async def record(
        self,
        account_id: uuid.UUID,
        category: ConsentCategory,
        granted: bool,
        origin: RequestOrigin | None = None,
    ) -> ConsentRecord:
        """Append a consent record. Flushes but does not commit."""
        origin = origin or RequestOrigin()
        entry = ConsentRecord(
            account_id=account_id,
            category=category,
            granted=granted,
            seq=await next_seq(self.db, account_id),
            ip_address=origin.ip_address,
            user_agent=origin.user_agent,
            policy_version=self.settings.consent_policy_version,
            created_at=datetime.now(UTC),
        )
        self.db.add(entry)
        await self.db.flush()
        logger.info(
            "Consent recorded: account=%s category=%s granted=%s",
            account_id,
            category.value,
            granted,
        )
        return entry

    async def history(self, account_id: uuid.UUID) -> list[ConsentRecord]:
        """All consent records for an account, newest first."""
        result = await self.db.execute(
            select(ConsentRecord)
            .where(ConsentRecord.account_id == account_id)
            .order_by(ConsentRecord.created_at.desc(), ConsentRecord.seq.desc())
        )
        return list(result.scalars().all())

    async def latest_by_category(self, account_id: uuid.UUID) -> dict[ConsentCategory, bool]:
        result = await self.db.execute(
            select(ConsentRecord)
            .where(ConsentRecord.account_id == account_id)
            .order_by(ConsentRecord.created_at.asc(), ConsentRecord.seq.asc())
        )
        return resolve_latest(result.scalars().all())

    def require_essential_consent(self, account: Account) -> None:
        """Gate for any data-producing or paid action."""
        if account.consent_given_at is None:
            raise ConsentRequiredError()

    async def update_preference(
        self,
        account: Account,
        category: ConsentCategory,
        granted: bool,
        origin: RequestOrigin | None = None,
    ) -> ConsentRecord:
        """Record a user-initiated consent change and mirror it onto the account."""
        if category not in USER_MUTABLE_CATEGORIES:
            raise ValidationError("Invalid consent type", code="invalid_consent_category")

        entry = await self.record(account.id, category, granted, origin)

        if category == ConsentCategory.MARKETING:
            account.marketing_consent = granted
        elif category == ConsentCategory.RETENTION:
            account.retention_consent = granted

        await self.db.commit()
        return entry
