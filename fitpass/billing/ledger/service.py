from __future__ import annotations

from datetime import date, datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.billing.errors import ProfileNotFoundError
from fitpass.billing.ledger.rules import credit_breakdown, plan_fifo_spend, rollover_trim
from fitpass.billing.ledger.types import (
    SOURCE_MONTHLY,
    SOURCE_PENALTY_PREFIX,
    SOURCE_REFUND_PREFIX,
    SOURCE_ROLLOVER_TRIM,
    SOURCE_SPEND,
    SOURCE_TOPUP_PREFIX,
    CreditBreakdown,
    LedgerRow,
    MonthlyGrantResult,
    SpendResult,
    TopUpEligibility,
)
from fitpass.billing.policy import DEFAULT_BILLING_POLICY, DEFAULT_TIER, BillingPolicy
from fitpass.billing.time import as_utc, utc_today
from fitpass.db.models.credit_ledger import CreditLedgerEntry
from fitpass.db.repo.credit_ledger_repo import CreditLedgerRepo
from fitpass.db.repo.profiles_repo import ProfilesRepo

logger = structlog.get_logger(__name__)


def _row_from_model(entry: CreditLedgerEntry) -> LedgerRow:
    return LedgerRow(
        id=entry.id,
        delta=entry.delta,
        source=entry.source,
        expires_at=entry.expires_at,
        created_at=as_utc(entry.created_at),
    )


class CreditLedgerService:
    @staticmethod
    async def _lock_user(session: AsyncSession, user_id: UUID) -> None:
        profile = await ProfilesRepo.get_by_id_for_update(session, user_id)
        if profile is None:
            raise ProfileNotFoundError

    @staticmethod
    async def _append(
        session: AsyncSession,
        *,
        user_id: UUID,
        delta: int,
        source: str,
        expires_at: date | None,
        now_utc: datetime,
    ) -> CreditLedgerEntry:
        try:
            return await CreditLedgerRepo.create(
                session,
                entry=CreditLedgerEntry(
                    user_id=user_id,
                    delta=delta,
                    source=source,
                    expires_at=expires_at,
                    created_at=now_utc,
                ),
            )
        except SQLAlchemyError:
            logger.error(
                "credit_ledger_append_failed",
                user_id=str(user_id),
                delta=delta,
                source=source,
                exc_info=True,
            )
            raise

    @staticmethod
    async def _active_rows(
        session: AsyncSession,
        *,
        user_id: UUID,
        today: date,
    ) -> list[LedgerRow]:
        entries = await CreditLedgerRepo.list_active(session, user_id=user_id, as_of=today)
        return [_row_from_model(entry) for entry in entries]

    @staticmethod
    async def get_active_credits(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
    ) -> int:
        try:
            raw_sum = await CreditLedgerRepo.sum_active(
                session,
                user_id=user_id,
                as_of=utc_today(now_utc),
            )
        except SQLAlchemyError:
            logger.error("credit_balance_read_failed", user_id=str(user_id), exc_info=True)
            raise
        return max(0, raw_sum)

    @staticmethod
    async def get_user_tier(session: AsyncSession, *, user_id: UUID) -> str:
        try:
            # a failed read must not abort the caller's transaction
            async with session.begin_nested():
                profile = await ProfilesRepo.get_by_id(session, user_id)
        except SQLAlchemyError:
            logger.warning("credit_tier_lookup_failed", user_id=str(user_id), exc_info=True)
            return DEFAULT_TIER
        if profile is None or not profile.tier:
            return DEFAULT_TIER
        return profile.tier

    @staticmethod
    async def can_purchase_top_up(
        session: AsyncSession,
        *,
        user_id: UUID,
        tier: str,
        add_credits: int,
        now_utc: datetime,
        policy: BillingPolicy = DEFAULT_BILLING_POLICY,
    ) -> bool:
        current = await CreditLedgerService.get_active_credits(
            session, user_id=user_id, now_utc=now_utc
        )
        return policy.is_within_cap(current=current, add=add_credits, tier=tier)

    @staticmethod
    async def get_top_up_eligibility(
        session: AsyncSession,
        *,
        user_id: UUID,
        tier: str,
        now_utc: datetime,
        policy: BillingPolicy = DEFAULT_BILLING_POLICY,
    ) -> list[TopUpEligibility]:
        current = await CreditLedgerService.get_active_credits(
            session, user_id=user_id, now_utc=now_utc
        )
        cap = policy.tier(tier).credit_cap
        return [
            TopUpEligibility(
                pack_code=pack.code,
                credits=pack.credits,
                can_purchase=policy.is_within_cap(current=current, add=pack.credits, tier=tier),
                projected=current + pack.credits,
                cap=cap,
            )
            for pack in policy.packs.values()
        ]

    @staticmethod
    async def grant_monthly_credits(
        session: AsyncSession,
        *,
        user_id: UUID,
        tier: str,
        now_utc: datetime,
        policy: BillingPolicy = DEFAULT_BILLING_POLICY,
    ) -> MonthlyGrantResult:
        tier_policy = policy.tier(tier)
        await CreditLedgerService._lock_user(session, user_id)
        balance_before = await CreditLedgerService.get_active_credits(
            session, user_id=user_id, now_utc=now_utc
        )

        trimmed = rollover_trim(balance_before, tier_policy)
        if trimmed > 0:
            await CreditLedgerService._append(
                session,
                user_id=user_id,
                delta=-trimmed,
                source=SOURCE_ROLLOVER_TRIM,
                expires_at=None,
                now_utc=now_utc,
            )

        await CreditLedgerService._append(
            session,
            user_id=user_id,
            delta=tier_policy.monthly_credits,
            source=SOURCE_MONTHLY,
            expires_at=None,
            now_utc=now_utc,
        )
        balance_after = balance_before - trimmed + tier_policy.monthly_credits
        logger.info(
            "monthly_credits_granted",
            user_id=str(user_id),
            tier=tier_policy.code,
            balance_before=balance_before,
            trimmed=trimmed,
            granted=tier_policy.monthly_credits,
        )
        return MonthlyGrantResult(
            tier=tier_policy.code,
            balance_before=balance_before,
            trimmed=trimmed,
            granted=tier_policy.monthly_credits,
            balance_after=balance_after,
        )

    @staticmethod
    async def spend_credits_fifo(
        session: AsyncSession,
        *,
        user_id: UUID,
        amount: int,
        now_utc: datetime,
    ) -> SpendResult:
        await CreditLedgerService._lock_user(session, user_id)
        today = utc_today(now_utc)
        rows = await CreditLedgerService._active_rows(session, user_id=user_id, today=today)
        balance_before = max(0, sum(row.delta for row in rows))

        plan = plan_fifo_spend(rows, amount=amount, today=today)
        if not plan.covered:
            logger.info(
                "credit_spend_rejected",
                user_id=str(user_id),
                amount=amount,
                available=plan.available,
            )
            return SpendResult(
                success=False,
                amount=amount,
                balance_before=balance_before,
                balance_after=balance_before,
            )

        try:
            await CreditLedgerRepo.create_many(
                session,
                entries=[
                    CreditLedgerEntry(
                        user_id=user_id,
                        delta=-allocation.amount,
                        source=SOURCE_SPEND,
                        expires_at=allocation.expires_at,
                        created_at=now_utc,
                    )
                    for allocation in plan.allocations
                ],
            )
        except SQLAlchemyError:
            logger.error(
                "credit_spend_write_failed",
                user_id=str(user_id),
                amount=amount,
                exc_info=True,
            )
            raise

        return SpendResult(
            success=True,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_before - amount,
            allocations=plan.allocations,
        )

    @staticmethod
    async def add_top_up(
        session: AsyncSession,
        *,
        user_id: UUID,
        credits: int,
        source_ref: str,
        now_utc: datetime,
        policy: BillingPolicy = DEFAULT_BILLING_POLICY,
    ) -> CreditLedgerEntry:
        if credits <= 0:
            raise ValueError("top-up credits must be positive")
        return await CreditLedgerService._append(
            session,
            user_id=user_id,
            delta=credits,
            source=f"{SOURCE_TOPUP_PREFIX}{source_ref}",
            expires_at=utc_today(now_utc) + timedelta(days=policy.expiration.topup_days),
            now_utc=now_utc,
        )

    @staticmethod
    async def has_top_up_for_ref(session: AsyncSession, *, user_id: UUID, source_ref: str) -> bool:
        return await CreditLedgerRepo.exists_with_source(
            session,
            user_id=user_id,
            source=f"{SOURCE_TOPUP_PREFIX}{source_ref}",
        )

    @staticmethod
    async def add_penalty(
        session: AsyncSession,
        *,
        user_id: UUID,
        credits: int,
        reason: str,
        now_utc: datetime,
    ) -> CreditLedgerEntry:
        if credits == 0:
            raise ValueError("penalty credits must be non-zero")
        return await CreditLedgerService._append(
            session,
            user_id=user_id,
            delta=-abs(credits),
            source=f"{SOURCE_PENALTY_PREFIX}{reason}",
            expires_at=None,
            now_utc=now_utc,
        )

    @staticmethod
    async def add_refund(
        session: AsyncSession,
        *,
        user_id: UUID,
        credits: int,
        original_expiration: date | None,
        reason: str,
        now_utc: datetime,
    ) -> CreditLedgerEntry:
        if credits <= 0:
            raise ValueError("refund credits must be positive")
        return await CreditLedgerService._append(
            session,
            user_id=user_id,
            delta=credits,
            source=f"{SOURCE_REFUND_PREFIX}{reason}",
            expires_at=original_expiration,
            now_utc=now_utc,
        )

    @staticmethod
    async def get_credit_breakdown(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
    ) -> CreditBreakdown:
        today = utc_today(now_utc)
        rows = await CreditLedgerService._active_rows(session, user_id=user_id, today=today)
        return credit_breakdown(rows, today)

    @staticmethod
    async def get_history(
        session: AsyncSession,
        *,
        user_id: UUID,
        limit: int = 50,
    ) -> list[LedgerRow]:
        entries = await CreditLedgerRepo.list_recent(session, user_id=user_id, limit=limit)
        return [_row_from_model(entry) for entry in entries]
