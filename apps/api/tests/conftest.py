"""Pytest configuration and fixtures for the Derma API test suite.

Provides:
- Per-test in-memory SQLite database (aiosqlite) with all tables created
- Test settings (fast bcrypt, fixed secrets) injected via dependency override
- Mock Redis (fakeredis)
- In-memory fakes for BlobStore, ImageAnalyzer and BillingProvider
- Fresh submission quota storage per test
- Disabled slowapi rate limiting
- Model factory fixtures for Account, Submission and ConsentRecord
"""

import os

# Must be set before the app (and its cached settings / engine) is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RATE_LIMIT_STORAGE_URL", "async+memory://")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator, Callable  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from typing import Any  # noqa: E402

import fakeredis.aioredis  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.config import Settings, get_settings  # noqa: E402
from app.core.deps import (  # noqa: E402
    get_billing_provider,
    get_blob_store,
    get_db,
    get_image_analyzer,
    get_redis,
    get_submission_quota,
)
from app.core.rate_limit import SubmissionQuota, limiter  # noqa: E402
from app.core.security import TokenService, hash_password  # noqa: E402
from app.main import app  # noqa: E402
from app.models.account import Account, SubscriptionStatus  # noqa: E402
from app.models.base import Base  # noqa: E402
from app.models.consent_record import ConsentCategory, ConsentRecord  # noqa: E402
from app.models.submission import Submission  # noqa: E402
from app.services.consent_ledger import next_seq  # noqa: E402
from tests.fakes import (  # noqa: E402
    FAKE_RESULT,
    TEST_PASSWORD,
    WEBHOOK_SECRET,
    FakeBillingProvider,
    FakeBlobStore,
    FakeImageAnalyzer,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TEST_EMAIL = "patient@example.com"
OTHER_EMAIL = "someone.else@example.com"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    """Settings with fixed secrets and the cheapest bcrypt cost."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        environment="test",
        database_url="sqlite+aiosqlite://",
        rate_limit_storage_url="async+memory://",
        jwt_secret="test-access-secret-0123456789abcdef0123456789abcdef",
        jwt_refresh_secret="test-refresh-secret-0123456789abcdef0123456789abcdef",
        bcrypt_rounds=4,
        cloudinary_folder="derma-test",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_premium_price_id="price_premium_monthly",
        frontend_url="http://frontend.test",
        submission_quota_free=5,
        submission_quota_premium=50,
    )


# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables.

    StaticPool keeps the single in-memory connection alive for the whole test,
    shared by fixtures and request sessions.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for test setup and assertions."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def analyzer() -> FakeImageAnalyzer:
    return FakeImageAnalyzer()


@pytest.fixture
def billing() -> FakeBillingProvider:
    return FakeBillingProvider()


@pytest_asyncio.fixture
async def quota(test_settings: Settings) -> AsyncGenerator[SubmissionQuota, None]:
    """Submission quota with its own in-memory counters."""
    submission_quota = SubmissionQuota(test_settings)
    yield submission_quota
    await submission_quota.reset()


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def account_factory(db_session: AsyncSession, test_settings: Settings) -> Callable[..., Any]:
    """Factory that creates Account instances in the test database."""

    async def _create(
        *,
        email: str = TEST_EMAIL,
        password: str = TEST_PASSWORD,
        consented: bool = True,
        is_premium: bool = False,
        subscription_status: SubscriptionStatus | None = None,
        billing_customer_id: str | None = None,
        billing_subscription_id: str | None = None,
        deletion_scheduled_at: datetime | None = None,
    ) -> Account:
        if subscription_status is None:
            subscription_status = (
                SubscriptionStatus.ACTIVE if is_premium else SubscriptionStatus.INACTIVE
            )
        account = Account(
            email=email,
            password_hash=hash_password(password, rounds=test_settings.bcrypt_rounds),
            is_premium=is_premium,
            subscription_status=subscription_status,
            billing_customer_id=billing_customer_id,
            billing_subscription_id=billing_subscription_id,
            consent_given_at=datetime.now(UTC) if consented else None,
            deletion_scheduled_at=deletion_scheduled_at,
        )
        db_session.add(account)
        await db_session.commit()
        await db_session.refresh(account)
        return account

    return _create


@pytest.fixture
def submission_factory(db_session: AsyncSession, test_settings: Settings) -> Callable[..., Any]:
    """Factory that creates Submission instances."""

    async def _create(
        *,
        account_id: uuid.UUID,
        blob_id: str | None = None,
        body_region: str = "forearm",
        created_at: datetime | None = None,
        expires_at: datetime | None = None,
        is_premium: bool = False,
    ) -> Submission:
        created = created_at or datetime.now(UTC)
        blob = blob_id or f"{test_settings.cloudinary_folder}/{account_id}/{uuid.uuid4().hex}"
        submission = Submission(
            account_id=account_id,
            blob_id=blob,
            image_url=f"https://blobs.test/{blob}.jpg",
            body_region=body_region,
            questionnaire={"duration": "2 weeks", "itching": "yes"},
            result={**FAKE_RESULT},
            is_premium=is_premium,
            created_at=created,
            updated_at=created,
            expires_at=expires_at
            or created + timedelta(days=test_settings.data_retention_days),
        )
        db_session.add(submission)
        await db_session.commit()
        await db_session.refresh(submission)
        return submission

    return _create


@pytest.fixture
def consent_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates ConsentRecord instances."""

    async def _create(
        *,
        account_id: uuid.UUID,
        category: ConsentCategory = ConsentCategory.MARKETING,
        granted: bool = True,
        created_at: datetime | None = None,
    ) -> ConsentRecord:
        record = ConsentRecord(
            account_id=account_id,
            category=category,
            granted=granted,
            seq=await next_seq(db_session, account_id),
            policy_version="1.0",
            created_at=created_at or datetime.now(UTC),
        )
        db_session.add(record)
        await db_session.commit()
        await db_session.refresh(record)
        return record

    return _create


@pytest_asyncio.fixture
async def account(account_factory: Callable[..., Any]) -> Account:
    """Default consented free-tier account."""
    return await account_factory()


@pytest.fixture
def auth_headers(test_settings: Settings) -> Callable[[Account], dict[str, str]]:
    """Build a bearer Authorization header for an account."""

    def _headers(target: Account) -> dict[str, str]:
        token = TokenService(test_settings).issue(target.id).access_token
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------------------------
# Unauthenticated client (overrides DB, settings, Redis and capabilities)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def unauthed_client(
    session_factory: async_sessionmaker[AsyncSession],
    test_settings: Settings,
    fake_redis: fakeredis.aioredis.FakeRedis,
    blob_store: FakeBlobStore,
    analyzer: FakeImageAnalyzer,
    billing: FakeBillingProvider,
    quota: SubmissionQuota,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with no credentials attached."""

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            yield s

    async def _override_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = _override_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_image_analyzer] = lambda: analyzer
    app.dependency_overrides[get_billing_provider] = lambda: billing
    app.dependency_overrides[get_submission_quota] = lambda: quota

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Authenticated client (real bearer token for the default account)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    unauthed_client: AsyncClient,
    account: Account,
    auth_headers: Callable[[Account], dict[str, str]],
) -> AsyncClient:
    """Client authenticated as ``account``."""
    unauthed_client.headers.update(auth_headers(account))
    return unauthed_client


# ---------------------------------------------------------------------------
# Lightweight client (no DB, no auth; for stateless endpoint tests)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def plain_client() -> AsyncGenerator[AsyncClient, None]:
    """Minimal async test client with NO dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
