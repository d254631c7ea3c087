"""Celery tasks for the GDPR retention sweep: scheduled erasure and expired submissions."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.database import async_session_maker, engine
from app.integrations.base import BillingProvider, BlobStore
from app.integrations.cloudinary.client import CloudinaryBlobStore
from app.integrations.stripe.client import StripeBillingProvider
from app.models.account import Account
from app.services.retention_service import DELETE_CONFIRMATION_PHRASE, RetentionManager
from app.workers.celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)


def _run_async[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a fresh event loop, disposing DB connections after.

    asyncpg connections are bound to the loop that created them, so pooled
    connections from a previous task's loop must not be reused.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(engine.dispose())
        loop.close()


# ---------------------------------------------------------------------------
# Scheduled account erasure
# ---------------------------------------------------------------------------


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.retention.purge_scheduled_deletions",
    base=BaseTask,
    bind=True,
)
def purge_scheduled_deletions(self: BaseTask) -> dict[str, Any]:  # noqa: ARG001
    """Erase every account whose grace period has run out."""
    return _run_async(_purge_scheduled_deletions_async())


async def _purge_scheduled_deletions_async(
    session_factory: async_sessionmaker[AsyncSession] = async_session_maker,
    settings: Settings | None = None,
    blob_store: BlobStore | None = None,
    billing: BillingProvider | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    blob_store = blob_store or CloudinaryBlobStore(settings)
    billing = billing or StripeBillingProvider(settings)

    async with session_factory() as db:
        due = await RetentionManager(db, settings, blob_store, billing).due_for_erasure()

    erased = 0
    failed = 0
    # One session per account so a failure cannot roll back other erasures
    for account_id in due:
        async with session_factory() as db:
            account = await db.get(Account, account_id)
            if account is None or account.deletion_scheduled_at is None:
                continue
            try:
                await RetentionManager(db, settings, blob_store, billing).delete_now(
                    account, DELETE_CONFIRMATION_PHRASE
                )
                erased += 1
            except Exception:
                failed += 1
                await db.rollback()
                logger.exception("Scheduled erasure failed: account=%s", account_id)

    logger.info("Scheduled erasure sweep: erased=%d failed=%d", erased, failed)
    return {"erased": erased, "failed": failed}


# ---------------------------------------------------------------------------
# Expired submissions
# ---------------------------------------------------------------------------


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.retention.purge_expired_submissions",
    base=BaseTask,
    bind=True,
)
def purge_expired_submissions(self: BaseTask) -> dict[str, Any]:  # noqa: ARG001
    """Delete submissions (and their images) past the retention window."""
    return _run_async(_purge_expired_submissions_async())


async def _purge_expired_submissions_async(
    session_factory: async_sessionmaker[AsyncSession] = async_session_maker,
    settings: Settings | None = None,
    blob_store: BlobStore | None = None,
    batch_size: int = 500,
) -> dict[str, Any]:
    settings = settings or get_settings()
    blob_store = blob_store or CloudinaryBlobStore(settings)

    total = 0
    async with session_factory() as db:
        # Billing is never touched by this sweep
        manager = RetentionManager(db, settings, blob_store, StripeBillingProvider(settings))
        while True:
            purged = await manager.purge_expired_submissions(batch_size=batch_size)
            total += purged
            if purged < batch_size:
                break

    return {"purged": total}
