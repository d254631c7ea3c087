"""Pydantic schemas for subscriptions and billing webhooks."""

from pydantic import Field

from app.models.account import SubscriptionStatus
from app.schemas.common import BaseSchema


class CheckoutResponse(BaseSchema):
    session_id: str
    url: str = Field(..., description="Hosted checkout page to redirect the user to")


class SubscriptionStatusResponse(BaseSchema):
    is_premium: bool
    status: SubscriptionStatus
    has_billing_customer: bool


class WebhookAck(BaseSchema):
    """Response returned to the billing provider."""

    received: bool = True
    status: str
