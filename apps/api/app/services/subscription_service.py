"""Subscription sync between accounts and the billing provider."""

import json
import logging
from typing import Any

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import NoActiveSubscriptionError, SignatureInvalidError
from app.integrations.base import BillingProvider, CheckoutSession
from app.integrations.stripe.webhooks import verify_webhook
from app.models.account import Account, SubscriptionStatus

logger = logging.getLogger(__name__)

# How long processed webhook event ids are remembered
EVENT_DEDUP_TTL = 7 * 24 * 3600  # 7 days

SUBSCRIPTION_UPSERT_EVENTS = frozenset(
    {"customer.subscription.created", "customer.subscription.updated"}
)
SUBSCRIPTION_DELETED_EVENT = "customer.subscription.deleted"
PAYMENT_FAILED_EVENT = "invoice.payment_failed"


def parse_status(raw: str | None) -> SubscriptionStatus:
    """Map a billing provider status onto ours.

    Provider states we do not model (trialing, incomplete, unpaid, ...) count
    as inactive, which keeps premium off.
    """
    try:
        return SubscriptionStatus(raw)
    except ValueError:
        return SubscriptionStatus.INACTIVE


def apply_status(account: Account, status: SubscriptionStatus) -> None:
    """Write status and premium flag together."""
    account.subscription_status = status
    account.is_premium = status == SubscriptionStatus.ACTIVE


class SubscriptionSync:
    """Checkout, cancellation and webhook-driven subscription state."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        billing: BillingProvider,
        redis: aioredis.Redis | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.billing = billing
        self.redis = redis

    async def create_checkout(self, account: Account) -> CheckoutSession:
        """Create (lazily) a billing customer, then a subscription checkout."""
        if not account.billing_customer_id:
            account.billing_customer_id = await self.billing.create_customer(
                account.email, str(account.id)
            )
            await self.db.commit()
            logger.info("Billing customer created: account=%s", account.id)

        return await self.billing.create_checkout_session(
            customer_id=account.billing_customer_id,
            price_id=self.settings.stripe_premium_price_id,
            account_id=str(account.id),
            success_url=(
                f"{self.settings.frontend_url}/subscription/success"
                "?session_id={CHECKOUT_SESSION_ID}"
            ),
            cancel_url=f"{self.settings.frontend_url}/subscription/cancel",
        )

    async def cancel(self, account: Account) -> None:
        if not account.billing_subscription_id:
            raise NoActiveSubscriptionError()
        await self.billing.cancel_subscription(account.billing_subscription_id)
        logger.info("Subscription cancel requested: account=%s", account.id)

    @staticmethod
    def status(account: Account) -> dict[str, Any]:
        return {
            "is_premium": account.is_premium,
            "status": account.subscription_status.value,
            "has_billing_customer": account.billing_customer_id is not None,
        }

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def handle_webhook(self, payload: bytes, signature: str) -> str:
        """Verify and apply one billing webhook delivery.

        Returns a short status string: "processed", "duplicate" or "ignored".

        Raises:
            SignatureInvalidError: If the signature header does not verify
                or the body is not a JSON object.
        """
        if not verify_webhook(
            payload,
            signature,
            self.settings.stripe_webhook_secret,
            tolerance=self.settings.stripe_webhook_tolerance,
        ):
            raise SignatureInvalidError()

        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            raise SignatureInvalidError()
        if not isinstance(event, dict):
            raise SignatureInvalidError()

        event_id = event.get("id")
        if event_id and not await self._claim_event(event_id):
            logger.info("Duplicate webhook event skipped: %s", event_id)
            return "duplicate"

        try:
            return await self.apply_event(event)
        except Exception:
            # Let the provider's redelivery have another go
            await self._release_event(event_id)
            raise

    async def apply_event(self, event: dict[str, Any]) -> str:
        """Dispatch a verified event on its type. Unknown types are ignored."""
        event_type = event.get("type", "")
        data = event.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            obj = {}

        if event_type in SUBSCRIPTION_UPSERT_EVENTS:
            applied = await self._on_subscription_changed(obj)
        elif event_type == SUBSCRIPTION_DELETED_EVENT:
            applied = await self._on_subscription_deleted(obj)
        elif event_type == PAYMENT_FAILED_EVENT:
            applied = await self._on_payment_failed(obj)
        else:
            logger.debug("Ignoring webhook event type %s", event_type)
            return "ignored"

        return "processed" if applied else "ignored"

    async def _account_by(self, column: Any, value: str | None) -> Account | None:
        if not value:
            return None
        result = await self.db.execute(select(Account).where(column == value))
        return result.scalar_one_or_none()

    async def _on_subscription_changed(self, subscription: dict[str, Any]) -> bool:
        account = await self._account_by(Account.billing_customer_id, subscription.get("customer"))
        if account is None:
            logger.warning("Subscription event for unknown customer %s", subscription.get("customer"))
            return False

        account.billing_subscription_id = subscription.get("id")
        apply_status(account, parse_status(subscription.get("status")))
        await self.db.commit()
        logger.info(
            "Subscription updated: account=%s status=%s",
            account.id,
            account.subscription_status.value,
        )
        return True

    async def _on_subscription_deleted(self, subscription: dict[str, Any]) -> bool:
        account = await self._account_by(Account.billing_subscription_id, subscription.get("id"))
        if account is None:
            return False

        apply_status(account, SubscriptionStatus.INACTIVE)
        await self.db.commit()
        logger.info("Subscription ended: account=%s", account.id)
        return True

    async def _on_payment_failed(self, invoice: dict[str, Any]) -> bool:
        account = await self._account_by(Account.billing_customer_id, invoice.get("customer"))
        if account is None:
            return False

        apply_status(account, SubscriptionStatus.PAST_DUE)
        await self.db.commit()
        logger.info("Payment failed: account=%s", account.id)
        return True

    async def _claim_event(self, event_id: str) -> bool:
        if self.redis is None:
            return True
        claimed = await self.redis.set(f"billing:event:{event_id}", "1", nx=True, ex=EVENT_DEDUP_TTL)
        return bool(claimed)

    async def _release_event(self, event_id: str | None) -> None:
        if self.redis is None or not event_id:
            return
        await self.redis.delete(f"billing:event:{event_id}")
