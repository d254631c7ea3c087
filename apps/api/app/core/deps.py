"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_async_session
from app.core.rate_limit import SubmissionQuota, get_client_ip
from app.integrations.base import BillingProvider, BlobStore, ImageAnalyzer
from app.integrations.cloudinary.client import CloudinaryBlobStore
from app.integrations.openai.analyzer import OpenAIImageAnalyzer
from app.integrations.stripe.client import StripeBillingProvider
from app.services.access_control import AccessControl
from app.services.consent_ledger import ConsentLedger, RequestOrigin
from app.services.retention_service import RetentionManager
from app.services.submission_pipeline import SubmissionPipeline
from app.services.subscription_service import SubscriptionSync


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield the request's database session."""
    async for session in get_async_session():
        yield session


# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Application settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]


# Shared Redis connection pool
_redis_pool: aioredis.ConnectionPool | None = None


def _get_redis_pool(settings: Settings) -> aioredis.ConnectionPool:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(settings.redis_url, decode_responses=True)
    return _redis_pool


async def get_redis(settings: SettingsDep) -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the shared connection pool."""
    r = aioredis.Redis(connection_pool=_get_redis_pool(settings))
    try:
        yield r
    finally:
        await r.aclose()


RedisDep = Annotated[aioredis.Redis, Depends(get_redis)]


# ---------------------------------------------------------------------------
# External capabilities
# ---------------------------------------------------------------------------


def get_blob_store(settings: SettingsDep) -> BlobStore:
    return CloudinaryBlobStore(settings)


def get_image_analyzer(settings: SettingsDep) -> ImageAnalyzer:
    return OpenAIImageAnalyzer(settings)


def get_billing_provider(settings: SettingsDep) -> BillingProvider:
    return StripeBillingProvider(settings)


# Quota counters must outlive a single request
_submission_quota: SubmissionQuota | None = None


def get_submission_quota(settings: SettingsDep) -> SubmissionQuota:
    global _submission_quota  # noqa: PLW0603
    if _submission_quota is None:
        _submission_quota = SubmissionQuota(settings)
    return _submission_quota


# ---------------------------------------------------------------------------
# Domain services
# ---------------------------------------------------------------------------


def get_access_control(db: DBSession, settings: SettingsDep) -> AccessControl:
    return AccessControl(db, settings)


def get_consent_ledger(db: DBSession, settings: SettingsDep) -> ConsentLedger:
    return ConsentLedger(db, settings)


def get_submission_pipeline(
    db: DBSession,
    settings: SettingsDep,
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    analyzer: Annotated[ImageAnalyzer, Depends(get_image_analyzer)],
) -> SubmissionPipeline:
    return SubmissionPipeline(db, settings, blob_store, analyzer)


def get_retention_manager(
    db: DBSession,
    settings: SettingsDep,
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    billing: Annotated[BillingProvider, Depends(get_billing_provider)],
) -> RetentionManager:
    return RetentionManager(db, settings, blob_store, billing)


def get_subscription_sync(
    db: DBSession,
    settings: SettingsDep,
    billing: Annotated[BillingProvider, Depends(get_billing_provider)],
    redis: RedisDep,
) -> SubscriptionSync:
    return SubscriptionSync(db, settings, billing, redis)


AccessControlDep = Annotated[AccessControl, Depends(get_access_control)]
ConsentLedgerDep = Annotated[ConsentLedger, Depends(get_consent_ledger)]
SubmissionPipelineDep = Annotated[SubmissionPipeline, Depends(get_submission_pipeline)]
RetentionManagerDep = Annotated[RetentionManager, Depends(get_retention_manager)]
SubscriptionSyncDep = Annotated[SubscriptionSync, Depends(get_subscription_sync)]
SubmissionQuotaDep = Annotated[SubmissionQuota, Depends(get_submission_quota)]


def get_request_origin(request: Request) -> RequestOrigin:
    """Network origin recorded alongside consent decisions."""
    return RequestOrigin(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


RequestOriginDep = Annotated[RequestOrigin, Depends(get_request_origin)]
