"""Tests for Stripe-Signature parsing and verification."""

from app.integrations.stripe.webhooks import (
    compute_signature,
    parse_signature_header,
    verify_webhook,
)

SECRET = "whsec_unit"
PAYLOAD = b'{"id":"evt_1"}'
NOW = 1_700_000_000


def _header(timestamp: int = NOW, secret: str = SECRET, payload: bytes = PAYLOAD) -> str:
    return f"t={timestamp},v1={compute_signature(payload, timestamp, secret)}"


class TestParseSignatureHeader:
    def test_parses_timestamp_and_signatures(self) -> None:
        assert parse_signature_header("t=123,v1=abc,v0=old,v1=def") == (123, ["abc", "def"])

    def test_bad_timestamp(self) -> None:
        assert parse_signature_header("t=soon,v1=abc") == (None, [])

    def test_empty(self) -> None:
        assert parse_signature_header("") == (None, [])


class TestVerifyWebhook:
    def test_valid(self) -> None:
        assert verify_webhook(PAYLOAD, _header(), SECRET, now=NOW)

    def test_any_v1_may_match(self) -> None:
        header = f"t={NOW},v1=deadbeef,v1={compute_signature(PAYLOAD, NOW, SECRET)}"
        assert verify_webhook(PAYLOAD, header, SECRET, now=NOW)

    def test_wrong_secret(self) -> None:
        assert not verify_webhook(PAYLOAD, _header(secret="whsec_other"), SECRET, now=NOW)

    def test_tampered_payload(self) -> None:
        assert not verify_webhook(b'{"id":"evt_2"}', _header(), SECRET, now=NOW)

    def test_outside_tolerance(self) -> None:
        assert verify_webhook(PAYLOAD, _header(), SECRET, tolerance=300, now=NOW + 300)
        assert not verify_webhook(PAYLOAD, _header(), SECRET, tolerance=300, now=NOW + 301)

    def test_missing_secret_or_header(self) -> None:
        assert not verify_webhook(PAYLOAD, _header(), "", now=NOW)
        assert not verify_webhook(PAYLOAD, "", SECRET, now=NOW)
        assert not verify_webhook(PAYLOAD, f"t={NOW}", SECRET, now=NOW)
