from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.billing.errors import GymNotFoundError
from fitpass.billing.payouts.rules import aggregate_payouts, report_to_payload
from fitpass.billing.payouts.types import (
    AttendedBooking,
    GymPayoutTerms,
    GymPricingEntry,
    PayoutReport,
    PayoutSnapshotEntry,
    PayoutSnapshotPage,
)
from fitpass.billing.policy import DEFAULT_BILLING_POLICY, BillingPolicy
from fitpass.billing.time import as_utc, utc_today
from fitpass.db.models.gyms import Gym, GymPricing
from fitpass.db.models.payout_snapshots import PayoutSnapshot
from fitpass.db.repo.bookings_repo import BookingsRepo
from fitpass.db.repo.gyms_repo import GymsRepo
from fitpass.db.repo.payout_snapshots_repo import PayoutSnapshotsRepo

logger = structlog.get_logger(__name__)


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _pricing_entry(pricing: GymPricing, gym: Gym) -> GymPricingEntry:
    return GymPricingEntry(
        pricing_id=pricing.id,
        gym_id=gym.id,
        gym_name=gym.name,
        payout_percentage=Decimal(pricing.payout_percentage),
        base_price=Decimal(pricing.base_price),
        active=pricing.active,
        created_at=as_utc(pricing.created_at),
    )


class PayoutService:
    @staticmethod
    async def generate_report(
        session: AsyncSession,
        *,
        now_utc: datetime,
        period_start: date | None = None,
        period_end: date | None = None,
        created_by: UUID | None = None,
        policy: BillingPolicy = DEFAULT_BILLING_POLICY,
    ) -> PayoutReport:
        end = period_end or utc_today(now_utc)
        start = period_start or end - timedelta(days=policy.payout.default_window_days)
        if start > end:
            raise ValueError("period_start must not be after period_end")

        rows = await BookingsRepo.list_attended_in_window(
            session,
            start_utc=_day_start(start),
            end_utc=_day_start(end + timedelta(days=1)),
        )
        bookings = [
            AttendedBooking(
                booking_id=booking.id,
                gym_id=gym.id,
                gym_name=gym.name,
                class_id=fitness_class.id,
                class_title=fitness_class.title,
                class_start=fitness_class.start_time,
                class_price=fitness_class.price,
            )
            for booking, fitness_class, gym in rows
        ]
        pricing = await GymsRepo.map_active_pricing(session, [item.gym_id for item in bookings])
        terms = {
            gym_id: GymPayoutTerms(
                payout_percentage=Decimal(row.payout_percentage),
                base_price=Decimal(row.base_price),
            )
            for gym_id, row in pricing.items()
        }
        report = aggregate_payouts(
            bookings,
            terms=terms,
            period_start=start,
            period_end=end,
            policy=policy.payout,
        )

        try:
            async with session.begin_nested():
                snapshot = await PayoutSnapshotsRepo.create(
                    session,
                    snapshot=PayoutSnapshot(
                        period_start=start,
                        period_end=end,
                        total_gyms=report.summary.total_gyms,
                        total_bookings=report.summary.total_bookings,
                        total_revenue=report.summary.total_revenue,
                        total_payouts=report.summary.total_payouts,
                        report=report_to_payload(report),
                        created_by=created_by,
                        created_at=now_utc,
                    ),
                )
            report.snapshot_id = snapshot.id
        except SQLAlchemyError:
            logger.warning("payout_snapshot_store_failed", exc_info=True)

        logger.info(
            "payout_report_generated",
            period_start=start.isoformat(),
            period_end=end.isoformat(),
            total_gyms=report.summary.total_gyms,
            total_payouts=str(report.summary.total_payouts),
        )
        return report

    @staticmethod
    async def set_gym_pricing(
        session: AsyncSession,
        *,
        gym_id: UUID,
        payout_percentage: Decimal,
        base_price: Decimal,
        now_utc: datetime,
        active: bool = True,
    ) -> GymPricingEntry:
        if not Decimal("0") < payout_percentage <= Decimal("1"):
            raise ValueError("payout_percentage must be within (0, 1]")
        if base_price < 0:
            raise ValueError("base_price must be non-negative")

        gym = await GymsRepo.get_by_id(session, gym_id)
        if gym is None:
            raise GymNotFoundError

        replaced = 0
        if active:
            replaced = await GymsRepo.deactivate_pricing(session, gym_id=gym_id)
        pricing = await GymsRepo.set_pricing(
            session,
            gym_id=gym_id,
            payout_percentage=payout_percentage,
            base_price=base_price,
            now_utc=now_utc,
            active=active,
        )
        logger.info(
            "gym_pricing_set",
            gym_id=str(gym_id),
            payout_percentage=str(payout_percentage),
            base_price=str(base_price),
            active=active,
            replaced=replaced,
        )
        return _pricing_entry(pricing, gym)

    @staticmethod
    async def list_gym_pricing(session: AsyncSession) -> list[GymPricingEntry]:
        rows = await GymsRepo.list_pricing_with_gyms(session)
        return [_pricing_entry(pricing, gym) for pricing, gym in rows]

    @staticmethod
    async def list_snapshots(
        session: AsyncSession,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> PayoutSnapshotPage:
        snapshots = await PayoutSnapshotsRepo.list_recent(session, limit=limit, offset=offset)
        total = await PayoutSnapshotsRepo.count(session)
        return PayoutSnapshotPage(
            snapshots=[
                PayoutSnapshotEntry(
                    snapshot_id=snapshot.id,
                    period_start=snapshot.period_start,
                    period_end=snapshot.period_end,
                    period_days=(snapshot.period_end - snapshot.period_start).days,
                    total_gyms=snapshot.total_gyms,
                    total_bookings=snapshot.total_bookings,
                    total_revenue=Decimal(snapshot.total_revenue),
                    total_payouts=Decimal(snapshot.total_payouts),
                    created_by=snapshot.created_by,
                    created_at=as_utc(snapshot.created_at),
                )
                for snapshot in snapshots
            ],
            total=total,
            limit=limit,
            offset=offset,
        )
