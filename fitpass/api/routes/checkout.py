from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog
from fastapi import APIRouter, Depends

from fitpass.api.deps import current_user_id
from fitpass.api.errors import billing_http_error
from fitpass.api.routes.billing_models import (
    CheckoutResponse,
    SubscriptionCheckoutRequest,
    TopUpCheckoutRequest,
    TouristPassCheckoutRequest,
    TouristPassStatusResponse,
)
from fitpass.billing.errors import BillingError
from fitpass.billing.passes.service import TouristPassService
from fitpass.billing.purchases.intents import CheckoutIntent
from fitpass.billing.purchases.service import PurchaseService
from fitpass.core.config import get_settings
from fitpass.db.session import SessionLocal

router = APIRouter(tags=["checkout"])
logger = structlog.get_logger(__name__)


def _checkout_response(intent: CheckoutIntent, *, now_utc: datetime) -> CheckoutResponse:
    settings = get_settings()
    checkout_ref = f"cs_{settings.payment_provider}_{uuid4().hex}"
    logger.info(
        "checkout_intent_created",
        user_id=str(intent.user_id),
        kind=intent.kind,
        checkout_ref=checkout_ref,
    )
    return CheckoutResponse(
        checkout_ref=checkout_ref,
        provider=settings.payment_provider,
        kind=intent.kind,
        metadata=intent.to_metadata(now_utc=now_utc),
    )


@router.post("/credits/topup", response_model=CheckoutResponse)
async def create_top_up_checkout(
    payload: TopUpCheckoutRequest,
    user_id: UUID = Depends(current_user_id),
) -> CheckoutResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            intent = await PurchaseService.prepare_top_up(
                session,
                user_id=user_id,
                pack_code=payload.pack_type,
                now_utc=now_utc,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
    return _checkout_response(intent, now_utc=now_utc)


@router.post("/tourist-pass/checkout", response_model=CheckoutResponse)
async def create_tourist_pass_checkout(
    payload: TouristPassCheckoutRequest,
    user_id: UUID = Depends(current_user_id),
) -> CheckoutResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            intent = await PurchaseService.prepare_tourist_pass(
                session,
                user_id=user_id,
                pass_code=payload.pass_type,
                now_utc=now_utc,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
    return _checkout_response(intent, now_utc=now_utc)


@router.post("/subscriptions/checkout", response_model=CheckoutResponse)
async def create_subscription_checkout(
    payload: SubscriptionCheckoutRequest,
    user_id: UUID = Depends(current_user_id),
) -> CheckoutResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            intent = await PurchaseService.prepare_subscription(
                session,
                user_id=user_id,
                tier=payload.tier,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
    return _checkout_response(intent, now_utc=now_utc)


@router.get("/tourist-pass/status", response_model=TouristPassStatusResponse)
async def get_tourist_pass_status(
    user_id: UUID = Depends(current_user_id),
) -> TouristPassStatusResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        status = await TouristPassService.get_status(session, user_id=user_id, now_utc=now_utc)
    active = status.active
    return TouristPassStatusResponse(
        has_active_pass=active is not None,
        pass_id=active.id if active is not None else None,
        classes_remaining=active.remaining if active is not None else None,
        ends_at=active.ends_at if active is not None else None,
        latest_pass_type=status.latest_pass_code,
    )
