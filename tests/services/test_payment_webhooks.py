from __future__ import annotations

import pytest

from fitpass.services.payment_webhooks import (
    WebhookSignatureError,
    build_signature_header,
    compute_signature,
    parse_signature_header,
    verify_signature,
)

SECRET = "whsec_test"
PAYLOAD = b'{"type":"checkout.session.completed"}'
NOW_TS = 1_773_144_000


def test_parse_signature_header_collects_all_v1_values() -> None:
    parsed = parse_signature_header("t=100, v1=abc, v0=zzz, v1=def")

    assert parsed.timestamp == 100
    assert parsed.signatures == ("abc", "def")


@pytest.mark.parametrize("header", [None, "", "v1=abc", "t=100", "t=soon,v1=abc"])
def test_parse_signature_header_rejects_malformed(header) -> None:
    with pytest.raises(WebhookSignatureError):
        parse_signature_header(header)


def test_verify_signature_accepts_fresh_valid_signature() -> None:
    header = build_signature_header(secret=SECRET, timestamp=NOW_TS - 30, payload=PAYLOAD)

    verify_signature(
        secret=SECRET,
        header=header,
        payload=PAYLOAD,
        now_ts=NOW_TS,
        tolerance_seconds=300,
    )


def test_verify_signature_accepts_any_matching_candidate() -> None:
    valid = compute_signature(secret=SECRET, timestamp=NOW_TS, payload=PAYLOAD)

    verify_signature(
        secret=SECRET,
        header=f"t={NOW_TS},v1=deadbeef,v1={valid}",
        payload=PAYLOAD,
        now_ts=NOW_TS,
        tolerance_seconds=300,
    )


def test_verify_signature_rejects_tampered_payload() -> None:
    header = build_signature_header(secret=SECRET, timestamp=NOW_TS, payload=PAYLOAD)

    with pytest.raises(WebhookSignatureError, match="mismatch"):
        verify_signature(
            secret=SECRET,
            header=header,
            payload=PAYLOAD + b" ",
            now_ts=NOW_TS,
            tolerance_seconds=300,
        )


def test_verify_signature_rejects_stale_timestamp() -> None:
    header = build_signature_header(secret=SECRET, timestamp=NOW_TS - 301, payload=PAYLOAD)

    with pytest.raises(WebhookSignatureError, match="tolerance"):
        verify_signature(
            secret=SECRET,
            header=header,
            payload=PAYLOAD,
            now_ts=NOW_TS,
            tolerance_seconds=300,
        )


def test_verify_signature_requires_configured_secret() -> None:
    with pytest.raises(WebhookSignatureError, match="not configured"):
        verify_signature(
            secret="",
            header="t=1,v1=abc",
            payload=PAYLOAD,
            now_ts=NOW_TS,
            tolerance_seconds=300,
        )
