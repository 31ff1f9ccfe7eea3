from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.billing.audit import record_credit_audit
from fitpass.billing.errors import ProductNotFoundError, ProfileNotFoundError
from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.billing.passes.service import TouristPassService
from fitpass.billing.policy import DEFAULT_BILLING_POLICY, BillingPolicy
from fitpass.billing.purchases.intents import (
    SubscriptionIntent,
    TopUpIntent,
    TouristPassIntent,
    parse_checkout_metadata,
)
from fitpass.billing.purchases.types import PurchaseApplyResult
from fitpass.db.repo.profiles_repo import ProfilesRepo
from fitpass.db.repo.tourist_passes_repo import TouristPassesRepo

logger = structlog.get_logger(__name__)


async def _apply_top_up(
    session: AsyncSession,
    *,
    intent: TopUpIntent,
    checkout_ref: str,
    now_utc: datetime,
    policy: BillingPolicy,
) -> PurchaseApplyResult:
    # serialises duplicate deliveries of one checkout before the dedupe read
    profile = await ProfilesRepo.get_by_id_for_update(session, intent.user_id)
    if profile is None:
        raise ProfileNotFoundError

    if await CreditLedgerService.has_top_up_for_ref(
        session, user_id=intent.user_id, source_ref=checkout_ref
    ):
        return PurchaseApplyResult(kind=intent.kind, checkout_ref=checkout_ref, idempotent_replay=True)

    credits_before = await CreditLedgerService.get_active_credits(
        session, user_id=intent.user_id, now_utc=now_utc
    )
    await CreditLedgerService.add_top_up(
        session,
        user_id=intent.user_id,
        credits=intent.credits,
        source_ref=checkout_ref,
        now_utc=now_utc,
        policy=policy,
    )
    await record_credit_audit(
        session,
        user_id=intent.user_id,
        action="topup",
        credits_before=credits_before,
        credits_after=credits_before + intent.credits,
        now_utc=now_utc,
        metadata={"checkout_ref": checkout_ref, "pack_type": intent.pack_type},
    )
    return PurchaseApplyResult(
        kind=intent.kind,
        checkout_ref=checkout_ref,
        idempotent_replay=False,
        credits_added=intent.credits,
    )


async def _apply_tourist_pass(
    session: AsyncSession,
    *,
    intent: TouristPassIntent,
    checkout_ref: str,
    now_utc: datetime,
    policy: BillingPolicy,
) -> PurchaseApplyResult:
    existing = await TouristPassesRepo.get_by_source_ref(session, checkout_ref)
    if existing is not None:
        return PurchaseApplyResult(
            kind=intent.kind,
            checkout_ref=checkout_ref,
            idempotent_replay=True,
            tourist_pass_id=str(existing.id),
        )

    pass_offer = policy.get_tourist_pass(intent.pass_type)
    if pass_offer is None:
        raise ProductNotFoundError

    try:
        async with session.begin_nested():
            tourist_pass = await TouristPassService.add_tourist_pass(
                session,
                user_id=intent.user_id,
                duration_days=pass_offer.duration_days,
                total_classes=pass_offer.classes,
                source_ref=checkout_ref,
                now_utc=now_utc,
                pass_code=pass_offer.code,
            )
    except IntegrityError:
        # a concurrent delivery of the same checkout inserted first
        existing = await TouristPassesRepo.get_by_source_ref(session, checkout_ref)
        if existing is None:
            raise
        return PurchaseApplyResult(
            kind=intent.kind,
            checkout_ref=checkout_ref,
            idempotent_replay=True,
            tourist_pass_id=str(existing.id),
        )
    await record_credit_audit(
        session,
        user_id=intent.user_id,
        action="tourist_pass_purchase",
        credits_before=None,
        credits_after=None,
        now_utc=now_utc,
        metadata={
            "checkout_ref": checkout_ref,
            "pass_type": pass_offer.code,
            "classes": pass_offer.classes,
            "duration_days": pass_offer.duration_days,
        },
    )
    return PurchaseApplyResult(
        kind=intent.kind,
        checkout_ref=checkout_ref,
        idempotent_replay=False,
        tourist_pass_id=str(tourist_pass.id),
    )


async def _apply_subscription(
    session: AsyncSession,
    *,
    intent: SubscriptionIntent,
    checkout_ref: str,
    now_utc: datetime,
) -> PurchaseApplyResult:
    profile = await ProfilesRepo.get_by_id_for_update(session, intent.user_id)
    if profile is None:
        raise ProfileNotFoundError

    previous_tier = profile.tier
    if previous_tier == intent.tier:
        return PurchaseApplyResult(
            kind=intent.kind,
            checkout_ref=checkout_ref,
            idempotent_replay=True,
            tier=intent.tier,
        )

    profile.tier = intent.tier
    profile.updated_at = now_utc
    await session.flush()
    await record_credit_audit(
        session,
        user_id=intent.user_id,
        action="subscription_change",
        credits_before=None,
        credits_after=None,
        now_utc=now_utc,
        metadata={
            "checkout_ref": checkout_ref,
            "previous_tier": previous_tier,
            "tier": intent.tier,
        },
    )
    return PurchaseApplyResult(
        kind=intent.kind,
        checkout_ref=checkout_ref,
        idempotent_replay=False,
        tier=intent.tier,
    )


async def apply_completed_checkout(
    session: AsyncSession,
    *,
    checkout_ref: str,
    metadata: Mapping[str, str] | None,
    now_utc: datetime,
    policy: BillingPolicy = DEFAULT_BILLING_POLICY,
) -> PurchaseApplyResult:
    intent = parse_checkout_metadata(metadata)
    if isinstance(intent, TopUpIntent):
        result = await _apply_top_up(
            session, intent=intent, checkout_ref=checkout_ref, now_utc=now_utc, policy=policy
        )
    elif isinstance(intent, TouristPassIntent):
        result = await _apply_tourist_pass(
            session, intent=intent, checkout_ref=checkout_ref, now_utc=now_utc, policy=policy
        )
    else:
        result = await _apply_subscription(
            session, intent=intent, checkout_ref=checkout_ref, now_utc=now_utc
        )

    logger.info(
        "checkout_completion_applied",
        user_id=str(intent.user_id),
        kind=intent.kind,
        checkout_ref=checkout_ref,
        idempotent_replay=result.idempotent_replay,
    )
    return result
