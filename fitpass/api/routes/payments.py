from __future__ import annotations

import json
import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Request

from fitpass.api.errors import billing_http_error
from fitpass.api.routes.billing_models import (
    CheckoutCompletionRequest,
    CheckoutCompletionResponse,
    WebhookAckResponse,
)
from fitpass.billing.errors import BillingError
from fitpass.billing.purchases.service import PurchaseService
from fitpass.billing.purchases.types import PurchaseApplyResult
from fitpass.core.config import get_settings
from fitpass.db.session import SessionLocal
from fitpass.services.payment_webhooks import (
    CHECKOUT_COMPLETED_EVENT,
    SIGNATURE_HEADER,
    WebhookSignatureError,
    verify_signature,
)

router = APIRouter(tags=["payments"])
logger = structlog.get_logger(__name__)


async def _apply_checkout(*, checkout_ref: str, metadata: dict[str, str]) -> PurchaseApplyResult:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            return await PurchaseService.apply_completed_checkout(
                session,
                checkout_ref=checkout_ref,
                metadata=metadata,
                now_utc=now_utc,
            )
        except BillingError as exc:
            logger.warning(
                "checkout_completion_rejected",
                checkout_ref=checkout_ref,
                error=type(exc).__name__,
            )
            raise billing_http_error(exc) from exc


@router.post("/payments/webhook", response_model=WebhookAckResponse)
async def payment_webhook(request: Request) -> WebhookAckResponse:
    settings = get_settings()
    body = await request.body()
    try:
        verify_signature(
            secret=settings.payment_webhook_secret,
            header=request.headers.get(SIGNATURE_HEADER),
            payload=body,
            now_ts=int(time.time()),
            tolerance_seconds=settings.payment_webhook_tolerance_seconds,
        )
    except WebhookSignatureError as exc:
        logger.warning("payment_webhook_signature_rejected", reason=str(exc))
        raise HTTPException(status_code=400, detail={"code": "E_INVALID_SIGNATURE"}) from exc

    try:
        event = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_INVALID_PAYLOAD"}) from exc

    event_type = event.get("type") if isinstance(event, dict) else None
    if event_type != CHECKOUT_COMPLETED_EVENT:
        logger.info("payment_webhook_ignored", event_type=event_type)
        return WebhookAckResponse(received=True, applied=False)

    session_object = (event.get("data") or {}).get("object") or {}
    checkout_ref = session_object.get("id")
    metadata = session_object.get("metadata") or {}
    if not isinstance(checkout_ref, str) or not checkout_ref or not isinstance(metadata, dict):
        raise HTTPException(status_code=400, detail={"code": "E_INVALID_PAYLOAD"})

    result = await _apply_checkout(
        checkout_ref=checkout_ref,
        metadata={str(key): str(value) for key, value in metadata.items()},
    )
    return WebhookAckResponse(
        received=True,
        applied=True,
        idempotent_replay=result.idempotent_replay,
    )


@router.post("/dev/checkout/complete", response_model=CheckoutCompletionResponse)
async def complete_checkout_directly(
    payload: CheckoutCompletionRequest,
) -> CheckoutCompletionResponse:
    settings = get_settings()
    if not settings.dev_checkout_enabled:
        raise HTTPException(status_code=403, detail={"code": "E_DEV_CHECKOUT_DISABLED"})

    result = await _apply_checkout(checkout_ref=payload.checkout_ref, metadata=payload.metadata)
    return CheckoutCompletionResponse(
        kind=result.kind,
        checkout_ref=result.checkout_ref,
        idempotent_replay=result.idempotent_replay,
        credits_added=result.credits_added,
        tourist_pass_id=result.tourist_pass_id,
        tier=result.tier,
    )
