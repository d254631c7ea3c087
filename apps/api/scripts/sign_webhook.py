"""Signing helper for simulating billing webhooks.

Reads the JSON body from stdin and prints a ``Stripe-Signature`` header value
(``t=<timestamp>,v1=<hex HMAC-SHA256>``) using STRIPE_WEBHOOK_SECRET from the
environment (or .env file).

Usage:
    BODY='{"id":"evt_1","type":"customer.subscription.updated","data":{"object":{"id":"sub_1","customer":"cus_1","status":"active"}}}'
    SIG=$(echo -n "$BODY" | python -m scripts.sign_webhook)
    curl -X POST http://localhost:8000/api/v1/subscription/webhook \\
      -H "Content-Type: application/json" \\
      -H "Stripe-Signature: $SIG" \\
      -d "$BODY"
"""

import sys
import time

from app.core.config import get_settings
from app.integrations.stripe.webhooks import compute_signature


def signature_header(body: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a signature header for ``body`` at ``timestamp`` (default: now)."""
    ts = int(time.time()) if timestamp is None else timestamp
    return f"t={ts},v1={compute_signature(body, ts, secret)}"


def main() -> None:
    secret = get_settings().stripe_webhook_secret
    if not secret:
        print("ERROR: STRIPE_WEBHOOK_SECRET is not set in .env", file=sys.stderr)
        sys.exit(1)

    body = sys.stdin.buffer.read()
    if not body:
        print("ERROR: No input received on stdin", file=sys.stderr)
        sys.exit(1)

    print(signature_header(body, secret), end="")


if __name__ == "__main__":
    main()
