"""Stripe REST API client using httpx."""

import logging
from typing import Any

import httpx

from app.core.config import Settings
from app.core.exceptions import BillingError
from app.integrations.base import CheckoutSession

logger = logging.getLogger(__name__)

STRIPE_API_BASE = "https://api.stripe.com/v1"


class StripeBillingProvider:
    """Async client for the subset of the Stripe API used for subscriptions."""

    def __init__(self, settings: Settings, timeout: float = 30.0) -> None:
        self.base_url = STRIPE_API_BASE
        self.headers = {"Authorization": f"Bearer {settings.stripe_secret_key}"}
        self.timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
            response = await client.request(method, f"{self.base_url}{path}", data=data)

        if not response.is_success:
            logger.error(
                "Stripe request failed: %s %s status=%s body=%s",
                method,
                path,
                response.status_code,
                response.text[:500],
            )
            raise BillingError(f"Stripe {method} {path} failed with {response.status_code}")

        body: dict[str, Any] = response.json()
        return body

    async def create_customer(self, email: str, account_id: str) -> str:
        """Create a Stripe customer and return its id."""
        customer = await self._request(
            "POST",
            "/customers",
            data={"email": email, "metadata[account_id]": account_id},
        )
        return str(customer["id"])

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        account_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Start a hosted checkout for a recurring subscription."""
        session = await self._request(
            "POST",
            "/checkout/sessions",
            data={
                "customer": customer_id,
                "mode": "subscription",
                "line_items[0][price]": price_id,
                "line_items[0][quantity]": 1,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata[account_id]": account_id,
            },
        )
        return CheckoutSession(session_id=session["id"], url=session["url"])

    async def cancel_subscription(self, subscription_id: str) -> None:
        await self._request("DELETE", f"/subscriptions/{subscription_id}")
