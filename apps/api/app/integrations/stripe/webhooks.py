"""Stripe webhook signature verification."""

import hashlib
import hmac
import time


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    """Hex HMAC-SHA256 of ``"<timestamp>.<payload>"``."""
    signed_payload = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def parse_signature_header(header: str) -> tuple[int | None, list[str]]:
    """Split ``t=...,v1=...,v1=...`` into the timestamp and v1 signatures."""
    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def verify_webhook(
    payload: bytes,
    signature_header: str,
    secret: str,
    tolerance: int = 300,
    now: float | None = None,
) -> bool:
    """Verify a Stripe webhook's ``Stripe-Signature`` header.

    Args:
        payload: The raw request body bytes.
        signature_header: The Stripe-Signature header value.
        secret: The endpoint's signing secret.
        tolerance: Maximum age of the signature in seconds.
        now: Current unix time, for tests.

    Returns:
        True if one of the v1 signatures matches and is recent enough.
    """
    if not secret or not signature_header:
        return False

    timestamp, signatures = parse_signature_header(signature_header)
    if timestamp is None or not signatures:
        return False

    current = time.time() if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        return False

    expected = compute_signature(payload, timestamp, secret)
    return any(hmac.compare_digest(expected, candidate) for candidate in signatures)
