from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass

SIGNATURE_HEADER = "X-Payment-Signature"
CHECKOUT_COMPLETED_EVENT = "checkout.session.completed"


class WebhookSignatureError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class ParsedSignature:
    timestamp: int
    signatures: tuple[str, ...]


def parse_signature_header(header: str | None) -> ParsedSignature:
    if not header:
        raise WebhookSignatureError("missing signature header")

    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as exc:
                raise WebhookSignatureError("invalid signature timestamp") from exc
        elif key == "v1" and value:
            signatures.append(value)

    if timestamp is None or not signatures:
        raise WebhookSignatureError("malformed signature header")
    return ParsedSignature(timestamp=timestamp, signatures=tuple(signatures))


def compute_signature(*, secret: str, timestamp: int, payload: bytes) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def build_signature_header(*, secret: str, timestamp: int, payload: bytes) -> str:
    return f"t={timestamp},v1={compute_signature(secret=secret, timestamp=timestamp, payload=payload)}"


def verify_signature(
    *,
    secret: str,
    header: str | None,
    payload: bytes,
    now_ts: int,
    tolerance_seconds: int,
) -> None:
    if not secret:
        raise WebhookSignatureError("webhook secret is not configured")

    parsed = parse_signature_header(header)
    if abs(now_ts - parsed.timestamp) > tolerance_seconds:
        raise WebhookSignatureError("signature timestamp outside tolerance")

    expected = compute_signature(secret=secret, timestamp=parsed.timestamp, payload=payload)
    if not any(secrets.compare_digest(expected, candidate) for candidate in parsed.signatures):
        raise WebhookSignatureError("signature mismatch")
