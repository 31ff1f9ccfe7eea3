from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from fitpass.billing.audit import record_credit_audit
from fitpass.billing.errors import ProfileNotFoundError
from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.billing.ledger.types import SOURCE_MONTHLY
from fitpass.billing.policy import DEFAULT_BILLING_POLICY, BillingPolicy
from fitpass.billing.time import month_start_utc
from fitpass.core.config import get_settings
from fitpass.db.repo.credit_audit_repo import CreditAuditRepo
from fitpass.db.repo.credit_ledger_repo import CreditLedgerRepo
from fitpass.db.repo.profiles_repo import ProfilesRepo
from fitpass.db.session import SessionLocal
from fitpass.workers.asyncio_runner import run_async_job
from fitpass.workers.celery_app import celery_app
from fitpass.workers.tasks.monthly_grants_schedule import configure_monthly_grants_schedule

logger = structlog.get_logger(__name__)

AUDIT_ACTION_MONTHLY_GRANT = "monthly_grant"

configure_monthly_grants_schedule(celery_app, day_of_month=get_settings().monthly_grant_day)


def is_grant_day(*, now_utc: datetime, grant_day: int, is_production: bool) -> bool:
    if not is_production:
        return True
    return now_utc.day == grant_day


async def _grant_single_user(
    user_id: UUID,
    *,
    now_utc: datetime,
    policy: BillingPolicy,
) -> str:
    async with SessionLocal.begin() as session:
        profile = await ProfilesRepo.get_by_id_for_update(session, user_id)
        if profile is None or profile.frozen or profile.tier is None:
            return "skipped"
        # the batch snapshot is taken before this lock; overlapping runs are caught here
        if await CreditLedgerRepo.exists_with_source_since(
            session,
            user_id=user_id,
            source=SOURCE_MONTHLY,
            since_utc=month_start_utc(now_utc),
        ):
            return "already_granted"

        result = await CreditLedgerService.grant_monthly_credits(
            session,
            user_id=user_id,
            tier=profile.tier,
            now_utc=now_utc,
            policy=policy,
        )
        await record_credit_audit(
            session,
            user_id=user_id,
            action=AUDIT_ACTION_MONTHLY_GRANT,
            credits_before=result.balance_before,
            credits_after=result.balance_after,
            now_utc=now_utc,
            metadata={
                "tier": result.tier,
                "grant_date": now_utc.date().isoformat(),
                "day_of_month": now_utc.day,
                "expected_grant": result.granted,
                "trimmed": result.trimmed,
            },
        )
    return "granted"


async def run_monthly_grants_async(
    *,
    now_utc: datetime | None = None,
    force: bool = False,
    policy: BillingPolicy = DEFAULT_BILLING_POLICY,
) -> dict[str, object]:
    settings = get_settings()
    now_utc = now_utc or datetime.now(timezone.utc)

    if not force and not is_grant_day(
        now_utc=now_utc,
        grant_day=settings.monthly_grant_day,
        is_production=settings.is_production,
    ):
        result: dict[str, object] = {
            "ran": False,
            "reason": "not_grant_day",
            "grant_day": settings.monthly_grant_day,
        }
        logger.info("monthly_grants_skipped", **result)
        return result

    async with SessionLocal.begin() as session:
        eligible = await ProfilesRepo.list_grant_eligible_ids(session, tiers=tuple(policy.tiers))
        already_granted = await CreditLedgerRepo.list_user_ids_with_source_since(
            session,
            source=SOURCE_MONTHLY,
            since_utc=month_start_utc(now_utc),
        )

    counters = {"granted": 0, "already_granted": 0, "skipped": 0, "failed": 0}
    for user_id in eligible:
        if user_id in already_granted:
            counters["already_granted"] += 1
            continue
        try:
            outcome = await _grant_single_user(user_id, now_utc=now_utc, policy=policy)
        except (SQLAlchemyError, ProfileNotFoundError):
            counters["failed"] += 1
            logger.exception("monthly_grant_user_failed", user_id=str(user_id))
            continue
        counters[outcome] += 1

    result = {"ran": True, "eligible": len(eligible), **counters}
    logger.info("monthly_grants_finished", **result)
    return result


async def get_monthly_grants_status_async(
    *,
    now_utc: datetime | None = None,
    policy: BillingPolicy = DEFAULT_BILLING_POLICY,
) -> dict[str, object]:
    settings = get_settings()
    now_utc = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        eligible = await ProfilesRepo.list_grant_eligible_ids(session, tiers=tuple(policy.tiers))
        last_grant = await CreditAuditRepo.get_latest_by_action(
            session, action=AUDIT_ACTION_MONTHLY_GRANT
        )
    return {
        "grant_day": settings.monthly_grant_day,
        "is_grant_day": is_grant_day(
            now_utc=now_utc,
            grant_day=settings.monthly_grant_day,
            is_production=settings.is_production,
        ),
        "eligible_users": len(eligible),
        "last_grant_at": last_grant.created_at.isoformat() if last_grant is not None else None,
    }


@celery_app.task(name="fitpass.workers.tasks.monthly_grants.run_monthly_grants")
def run_monthly_grants(force: bool = False) -> dict[str, object]:
    return run_async_job(run_monthly_grants_async(force=force), job_name="monthly_grants")
