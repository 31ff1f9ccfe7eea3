from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.billing.errors import (
    AccountFrozenError,
    ActiveTouristPassExistsError,
    ProductNotFoundError,
    ProfileNotFoundError,
    TierCapExceededError,
)
from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.billing.passes.service import TouristPassService
from fitpass.billing.policy import DEFAULT_BILLING_POLICY, BillingPolicy
from fitpass.billing.purchases.intents import SubscriptionIntent, TopUpIntent, TouristPassIntent
from fitpass.billing.purchases.types import TopUpOptions
from fitpass.db.models.profiles import Profile
from fitpass.db.repo.profiles_repo import ProfilesRepo

logger = structlog.get_logger(__name__)


async def _require_profile(session: AsyncSession, user_id: UUID) -> Profile:
    profile = await ProfilesRepo.get_by_id(session, user_id)
    if profile is None:
        raise ProfileNotFoundError
    return profile


async def get_top_up_options(
    session: AsyncSession,
    *,
    user_id: UUID,
    now_utc: datetime,
    policy: BillingPolicy = DEFAULT_BILLING_POLICY,
) -> TopUpOptions:
    profile = await _require_profile(session, user_id)
    tier = await CreditLedgerService.get_user_tier(session, user_id=user_id)
    current = await CreditLedgerService.get_active_credits(
        session, user_id=user_id, now_utc=now_utc
    )
    options = await CreditLedgerService.get_top_up_eligibility(
        session,
        user_id=user_id,
        tier=tier,
        now_utc=now_utc,
        policy=policy,
    )
    if profile.frozen:
        for option in options:
            option.can_purchase = False
    return TopUpOptions(
        tier=tier,
        current_credits=current,
        credit_cap=policy.tier(tier).credit_cap,
        frozen=profile.frozen,
        options=options,
    )


async def prepare_top_up(
    session: AsyncSession,
    *,
    user_id: UUID,
    pack_code: str,
    now_utc: datetime,
    policy: BillingPolicy = DEFAULT_BILLING_POLICY,
) -> TopUpIntent:
    profile = await _require_profile(session, user_id)
    if profile.frozen:
        raise AccountFrozenError

    pack = policy.get_pack(pack_code)
    if pack is None:
        raise ProductNotFoundError

    tier = await CreditLedgerService.get_user_tier(session, user_id=user_id)
    current = await CreditLedgerService.get_active_credits(
        session, user_id=user_id, now_utc=now_utc
    )
    if not policy.is_within_cap(current=current, add=pack.credits, tier=tier):
        raise TierCapExceededError(
            current=current,
            requested=pack.credits,
            cap=policy.tier(tier).credit_cap,
        )

    logger.info(
        "topup_checkout_prepared",
        user_id=str(user_id),
        pack_code=pack.code,
        credits_before=current,
    )
    return TopUpIntent(
        user_id=user_id,
        pack_type=pack.code,
        credits=pack.credits,
        credits_before=current,
    )


async def prepare_tourist_pass(
    session: AsyncSession,
    *,
    user_id: UUID,
    pass_code: str,
    now_utc: datetime,
    policy: BillingPolicy = DEFAULT_BILLING_POLICY,
) -> TouristPassIntent:
    await _require_profile(session, user_id)
    pass_offer = policy.get_tourist_pass(pass_code)
    if pass_offer is None:
        raise ProductNotFoundError

    active = await TouristPassService.has_active_tourist_pass(
        session, user_id=user_id, now_utc=now_utc
    )
    if active is not None:
        raise ActiveTouristPassExistsError

    return TouristPassIntent(user_id=user_id, pass_type=pass_offer.code)


async def prepare_subscription(
    session: AsyncSession,
    *,
    user_id: UUID,
    tier: str,
    policy: BillingPolicy = DEFAULT_BILLING_POLICY,
) -> SubscriptionIntent:
    profile = await _require_profile(session, user_id)
    if profile.frozen:
        raise AccountFrozenError
    if tier not in policy.tiers:
        raise ProductNotFoundError
    return SubscriptionIntent(user_id=user_id, tier=tier)
