"""Tests for SubscriptionSync: checkout, cancel and webhook-driven state."""

import json
from collections.abc import Callable
from typing import Any

import fakeredis.aioredis
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import BillingError, NoActiveSubscriptionError, SignatureInvalidError
from app.models.account import Account, SubscriptionStatus
from app.services.subscription_service import (
    SubscriptionSync,
    apply_status,
    parse_status,
)
from scripts.sign_webhook import signature_header
from tests.fakes import WEBHOOK_SECRET, FakeBillingProvider

CUSTOMER_ID = "cus_42"
SUBSCRIPTION_ID = "sub_42"


def _event(event_type: str, obj: dict[str, Any], event_id: str = "evt_1") -> bytes:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()


def _subscription(status: str, sub_id: str = SUBSCRIPTION_ID) -> dict[str, Any]:
    return {"id": sub_id, "customer": CUSTOMER_ID, "status": status}


@pytest.fixture
def sync(
    db_session: AsyncSession,
    test_settings: Settings,
    billing: FakeBillingProvider,
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> SubscriptionSync:
    return SubscriptionSync(db_session, test_settings, billing, fake_redis)


@pytest_asyncio.fixture
async def customer(account_factory: Callable[..., Any]) -> Account:
    """Account that already has a billing customer."""
    return await account_factory(email="customer@example.com", billing_customer_id=CUSTOMER_ID)


async def _deliver(sync: SubscriptionSync, body: bytes) -> str:
    return await sync.handle_webhook(body, signature_header(body, WEBHOOK_SECRET))


# ---------------------------------------------------------------------------
# Status helpers
# ---------------------------------------------------------------------------


class TestStatusHelpers:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("active", SubscriptionStatus.ACTIVE),
            ("past_due", SubscriptionStatus.PAST_DUE),
            ("canceled", SubscriptionStatus.CANCELED),
            ("trialing", SubscriptionStatus.INACTIVE),
            ("incomplete_expired", SubscriptionStatus.INACTIVE),
            (None, SubscriptionStatus.INACTIVE),
        ],
    )
    def test_parse_status(self, raw: str | None, expected: SubscriptionStatus) -> None:
        assert parse_status(raw) == expected

    @pytest.mark.parametrize("status", list(SubscriptionStatus))
    def test_premium_follows_status(self, status: SubscriptionStatus) -> None:
        account = Account(email="x@example.com", password_hash="x", is_premium=True)

        apply_status(account, status)

        assert account.subscription_status == status
        assert account.is_premium is (status == SubscriptionStatus.ACTIVE)


# ---------------------------------------------------------------------------
# Checkout / cancel / status
# ---------------------------------------------------------------------------


class TestCheckout:
    async def test_creates_customer_once(
        self,
        sync: SubscriptionSync,
        account: Account,
        billing: FakeBillingProvider,
    ) -> None:
        first = await sync.create_checkout(account)
        second = await sync.create_checkout(account)

        assert len(billing.customers) == 1
        assert billing.customers[0]["email"] == account.email
        assert account.billing_customer_id == "cus_1"
        assert first.session_id != second.session_id
        assert billing.checkouts[0]["customer_id"] == "cus_1"
        assert billing.checkouts[0]["price_id"] == "price_premium_monthly"
        assert billing.checkouts[0]["success_url"] == (
            "http://frontend.test/subscription/success?session_id={CHECKOUT_SESSION_ID}"
        )
        assert billing.checkouts[0]["cancel_url"] == "http://frontend.test/subscription/cancel"

    async def test_reuses_existing_customer(
        self,
        sync: SubscriptionSync,
        customer: Account,
        billing: FakeBillingProvider,
    ) -> None:
        await sync.create_checkout(customer)

        assert billing.customers == []
        assert billing.checkouts[0]["customer_id"] == CUSTOMER_ID

    async def test_billing_failure_propagates(
        self,
        sync: SubscriptionSync,
        account: Account,
        billing: FakeBillingProvider,
    ) -> None:
        billing.fail = True

        with pytest.raises(BillingError):
            await sync.create_checkout(account)


class TestCancel:
    async def test_cancel_without_subscription(
        self,
        sync: SubscriptionSync,
        account: Account,
    ) -> None:
        with pytest.raises(NoActiveSubscriptionError):
            await sync.cancel(account)

    async def test_cancel_keeps_premium_until_webhook(
        self,
        sync: SubscriptionSync,
        account_factory: Callable[..., Any],
        billing: FakeBillingProvider,
    ) -> None:
        subscriber = await account_factory(
            email="sub@example.com",
            is_premium=True,
            billing_customer_id=CUSTOMER_ID,
            billing_subscription_id=SUBSCRIPTION_ID,
        )

        await sync.cancel(subscriber)

        assert billing.canceled == [SUBSCRIPTION_ID]
        assert subscriber.is_premium is True

    def test_status(self) -> None:
        account = Account(
            email="x@example.com",
            password_hash="x",
            is_premium=False,
            subscription_status=SubscriptionStatus.PAST_DUE,
            billing_customer_id="cus_1",
        )

        assert SubscriptionSync.status(account) == {
            "is_premium": False,
            "status": "past_due",
            "has_billing_customer": True,
        }


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


class TestWebhook:
    @pytest.mark.parametrize(
        ("status", "premium"),
        [("active", True), ("past_due", False), ("canceled", False), ("trialing", False)],
    )
    async def test_subscription_updated(
        self,
        sync: SubscriptionSync,
        customer: Account,
        status: str,
        premium: bool,
    ) -> None:
        body = _event("customer.subscription.updated", _subscription(status))

        assert await _deliver(sync, body) == "processed"

        assert customer.billing_subscription_id == SUBSCRIPTION_ID
        assert customer.is_premium is premium

    async def test_lifecycle_keeps_premium_consistent(
        self,
        sync: SubscriptionSync,
        customer: Account,
    ) -> None:
        """is_premium is true exactly when the status is active, after every event."""
        events = [
            _event("customer.subscription.created", _subscription("active"), "evt_a"),
            _event("invoice.payment_failed", {"customer": CUSTOMER_ID}, "evt_b"),
            _event("customer.subscription.updated", _subscription("past_due"), "evt_c"),
            _event("customer.subscription.updated", _subscription("active"), "evt_d"),
            _event("customer.subscription.deleted", _subscription("canceled"), "evt_e"),
        ]
        for body in events:
            assert await _deliver(sync, body) == "processed"
            assert customer.is_premium is (
                customer.subscription_status == SubscriptionStatus.ACTIVE
            )

        assert customer.subscription_status == SubscriptionStatus.INACTIVE
        assert customer.is_premium is False

    async def test_payment_failed_turns_premium_off(
        self,
        sync: SubscriptionSync,
        account_factory: Callable[..., Any],
    ) -> None:
        subscriber = await account_factory(
            email="sub@example.com",
            is_premium=True,
            billing_customer_id=CUSTOMER_ID,
            billing_subscription_id=SUBSCRIPTION_ID,
        )
        body = _event("invoice.payment_failed", {"customer": CUSTOMER_ID})

        assert await _deliver(sync, body) == "processed"

        assert subscriber.subscription_status == SubscriptionStatus.PAST_DUE
        assert subscriber.is_premium is False
        assert subscriber.billing_subscription_id == SUBSCRIPTION_ID

    async def test_deleted_matches_by_subscription_id(
        self,
        sync: SubscriptionSync,
        account_factory: Callable[..., Any],
    ) -> None:
        subscriber = await account_factory(
            email="sub@example.com",
            is_premium=True,
            billing_customer_id=CUSTOMER_ID,
            billing_subscription_id=SUBSCRIPTION_ID,
        )
        body = _event("customer.subscription.deleted", {"id": SUBSCRIPTION_ID})

        assert await _deliver(sync, body) == "processed"
        assert subscriber.is_premium is False
        assert subscriber.subscription_status == SubscriptionStatus.INACTIVE

    async def test_duplicate_delivery(
        self,
        sync: SubscriptionSync,
        customer: Account,
    ) -> None:
        body = _event("customer.subscription.updated", _subscription("active"))

        assert await _deliver(sync, body) == "processed"
        assert await _deliver(sync, body) == "duplicate"

    async def test_unknown_event_type_ignored(
        self,
        sync: SubscriptionSync,
        customer: Account,
    ) -> None:
        body = _event("charge.refunded", {"customer": CUSTOMER_ID})

        assert await _deliver(sync, body) == "ignored"
        assert customer.subscription_status == SubscriptionStatus.INACTIVE

    async def test_unknown_customer_ignored(self, sync: SubscriptionSync) -> None:
        body = _event(
            "customer.subscription.updated",
            {"id": "sub_x", "customer": "cus_unknown", "status": "active"},
        )

        assert await _deliver(sync, body) == "ignored"

    async def test_bad_signature(
        self,
        sync: SubscriptionSync,
        customer: Account,
    ) -> None:
        body = _event("customer.subscription.updated", _subscription("active"))

        with pytest.raises(SignatureInvalidError):
            await sync.handle_webhook(body, signature_header(body, "whsec_wrong"))
        with pytest.raises(SignatureInvalidError):
            await sync.handle_webhook(body, "")

        assert customer.is_premium is False

    async def test_stale_signature(
        self,
        sync: SubscriptionSync,
        customer: Account,
    ) -> None:
        body = _event("customer.subscription.updated", _subscription("active"))

        with pytest.raises(SignatureInvalidError):
            await sync.handle_webhook(body, signature_header(body, WEBHOOK_SECRET, timestamp=1))

    async def test_invalid_json(self, sync: SubscriptionSync) -> None:
        body = b"not json"

        with pytest.raises(SignatureInvalidError):
            await _deliver(sync, body)

    @pytest.mark.parametrize("body", [b"[1, 2]", b'"evt"', b"null"])
    async def test_non_object_json(self, sync: SubscriptionSync, body: bytes) -> None:
        with pytest.raises(SignatureInvalidError):
            await _deliver(sync, body)

    @pytest.mark.parametrize("data", [None, [], {"object": None}, {"object": "sub_42"}])
    async def test_malformed_data_is_ignored(
        self,
        sync: SubscriptionSync,
        customer: Account,
        data: Any,
    ) -> None:
        body = json.dumps(
            {"id": "evt_odd", "type": "customer.subscription.updated", "data": data}
        ).encode()

        assert await _deliver(sync, body) == "ignored"
        assert customer.is_premium is False

    async def test_failed_processing_allows_redelivery(
        self,
        sync: SubscriptionSync,
        customer: Account,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        body = _event("customer.subscription.updated", _subscription("active"))

        async def _boom(_subscription: dict[str, Any]) -> bool:
            raise RuntimeError("database went away")

        monkeypatch.setattr(sync, "_on_subscription_changed", _boom)
        with pytest.raises(RuntimeError):
            await _deliver(sync, body)
        monkeypatch.undo()

        assert await _deliver(sync, body) == "processed"
        assert customer.is_premium is True

    async def test_without_redis_every_delivery_applies(
        self,
        db_session: AsyncSession,
        test_settings: Settings,
        billing: FakeBillingProvider,
        customer: Account,
    ) -> None:
        sync = SubscriptionSync(db_session, test_settings, billing)
        body = _event("customer.subscription.updated", _subscription("active"))

        assert await _deliver(sync, body) == "processed"
        assert await _deliver(sync, body) == "processed"
