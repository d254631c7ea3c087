"""Premium subscription endpoints and the billing webhook."""

from fastapi import APIRouter, Request

from app.core.auth import ConsentedAccount, CurrentAccount
from app.core.deps import SubscriptionSyncDep
from app.core.rate_limit import limiter
from app.schemas.common import MessageResponse
from app.schemas.subscription import CheckoutResponse, SubscriptionStatusResponse, WebhookAck
from app.services.subscription_service import SubscriptionSync

router = APIRouter()


@router.post("/create-checkout", response_model=CheckoutResponse, summary="Start checkout")
async def create_checkout(
    account: ConsentedAccount,
    sync: SubscriptionSyncDep,
) -> CheckoutResponse:
    """Create a hosted checkout session for the premium plan."""
    session = await sync.create_checkout(account)
    return CheckoutResponse(session_id=session.session_id, url=session.url)


@router.get("/status", response_model=SubscriptionStatusResponse, summary="Subscription status")
async def subscription_status(account: CurrentAccount) -> SubscriptionStatusResponse:
    return SubscriptionStatusResponse(**SubscriptionSync.status(account))


@router.post("/cancel", response_model=MessageResponse, summary="Cancel subscription")
async def cancel_subscription(
    account: CurrentAccount,
    sync: SubscriptionSyncDep,
) -> MessageResponse:
    """Ask the billing provider to cancel.

    Premium stays on until the provider confirms through the webhook.
    """
    await sync.cancel(account)
    return MessageResponse(message="Subscription canceled successfully")


@router.post("/webhook", response_model=WebhookAck, summary="Billing webhook")
@limiter.exempt
async def billing_webhook(request: Request, sync: SubscriptionSyncDep) -> WebhookAck:
    """Apply a signed subscription event from the billing provider (no auth)."""
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature", "")
    result = await sync.handle_webhook(payload, signature)
    return WebhookAck(status=result)
