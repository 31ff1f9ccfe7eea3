from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from fitpass.api.deps import current_user_id
from fitpass.api.errors import billing_http_error
from fitpass.api.routes.billing_models import (
    CreditBalanceResponse,
    CreditBreakdownResponse,
    CreditHistoryResponse,
    ExpiringCreditsResponse,
    LedgerEntryResponse,
    TopUpOptionResponse,
    TopUpOptionsResponse,
)
from fitpass.billing.errors import BillingError
from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.billing.policy import DEFAULT_BILLING_POLICY
from fitpass.billing.purchases.service import PurchaseService
from fitpass.db.session import SessionLocal

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("", response_model=CreditBalanceResponse)
async def get_credits(user_id: UUID = Depends(current_user_id)) -> CreditBalanceResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        tier = await CreditLedgerService.get_user_tier(session, user_id=user_id)
        credits = await CreditLedgerService.get_active_credits(
            session, user_id=user_id, now_utc=now_utc
        )
    return CreditBalanceResponse(
        credits=credits,
        tier=tier,
        credit_cap=DEFAULT_BILLING_POLICY.tier(tier).credit_cap,
    )


@router.get("/breakdown", response_model=CreditBreakdownResponse)
async def get_breakdown(user_id: UUID = Depends(current_user_id)) -> CreditBreakdownResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        breakdown = await CreditLedgerService.get_credit_breakdown(
            session, user_id=user_id, now_utc=now_utc
        )
    return CreditBreakdownResponse(
        total=breakdown.total,
        expiring=[
            ExpiringCreditsResponse(amount=item.amount, expires_at=item.expires_at)
            for item in breakdown.expiring
        ],
        non_expiring=breakdown.non_expiring,
    )


@router.get("/history", response_model=CreditHistoryResponse)
async def get_history(
    limit: int = Query(default=50, ge=1, le=200),
    user_id: UUID = Depends(current_user_id),
) -> CreditHistoryResponse:
    async with SessionLocal.begin() as session:
        rows = await CreditLedgerService.get_history(session, user_id=user_id, limit=limit)
    return CreditHistoryResponse(
        entries=[
            LedgerEntryResponse(
                id=row.id,
                delta=row.delta,
                source=row.source,
                expires_at=row.expires_at,
                created_at=row.created_at,
            )
            for row in rows
        ]
    )


@router.get("/topup", response_model=TopUpOptionsResponse)
async def get_top_up_options(user_id: UUID = Depends(current_user_id)) -> TopUpOptionsResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            options = await PurchaseService.get_top_up_options(
                session, user_id=user_id, now_utc=now_utc
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
    return TopUpOptionsResponse(
        tier=options.tier,
        current_credits=options.current_credits,
        credit_cap=options.credit_cap,
        frozen=options.frozen,
        options=[
            TopUpOptionResponse(
                pack_type=option.pack_code,
                credits=option.credits,
                price_usd=DEFAULT_BILLING_POLICY.packs[option.pack_code].price_usd,
                can_purchase=option.can_purchase,
                projected=option.projected,
            )
            for option in options.options
        ],
    )
