from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from fitpass.billing.payouts.types import (
    AttendedBooking,
    ClassPayout,
    GymPayout,
    GymPayoutTerms,
    PayoutReport,
    PayoutSummary,
)
from fitpass.billing.policy import PayoutPolicy
from fitpass.billing.time import as_utc

CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def aggregate_payouts(
    bookings: Iterable[AttendedBooking],
    *,
    terms: Mapping[UUID, GymPayoutTerms],
    period_start: date,
    period_end: date,
    policy: PayoutPolicy,
) -> PayoutReport:
    gyms: dict[UUID, GymPayout] = {}
    classes: dict[tuple[UUID, UUID, date], ClassPayout] = {}

    for booking in bookings:
        gym_terms = terms.get(
            booking.gym_id,
            GymPayoutTerms(payout_percentage=policy.percentage, base_price=policy.default_base_price),
        )
        gym = gyms.get(booking.gym_id)
        if gym is None:
            gym = GymPayout(
                gym_id=booking.gym_id,
                gym_name=booking.gym_name,
                payout_percentage=gym_terms.payout_percentage,
            )
            gyms[booking.gym_id] = gym

        class_date = as_utc(booking.class_start).date()
        class_key = (booking.gym_id, booking.class_id, class_date)
        class_payout = classes.get(class_key)
        if class_payout is None:
            class_payout = ClassPayout(
                class_id=booking.class_id,
                title=booking.class_title,
                class_date=class_date,
            )
            classes[class_key] = class_payout
            gym.classes.append(class_payout)

        revenue = Decimal(booking.class_price) if booking.class_price is not None else gym_terms.base_price
        payout = revenue * gym_terms.payout_percentage
        class_payout.bookings += 1
        class_payout.revenue += revenue
        class_payout.payout += payout
        gym.total_bookings += 1
        gym.total_revenue += revenue
        gym.total_payout += payout

    ordered = sorted(gyms.values(), key=lambda item: item.total_payout, reverse=True)
    for gym in ordered:
        gym.total_revenue = _money(gym.total_revenue)
        gym.total_payout = _money(gym.total_payout)
        for class_payout in gym.classes:
            class_payout.revenue = _money(class_payout.revenue)
            class_payout.payout = _money(class_payout.payout)
        gym.classes.sort(key=lambda item: (item.class_date, item.title))

    average_percentage = (
        sum((gym.payout_percentage for gym in ordered), Decimal("0")) / len(ordered)
        if ordered
        else Decimal("0")
    )
    summary = PayoutSummary(
        total_gyms=len(ordered),
        total_bookings=sum(gym.total_bookings for gym in ordered),
        total_revenue=_money(sum((gym.total_revenue for gym in ordered), Decimal("0"))),
        total_payouts=_money(sum((gym.total_payout for gym in ordered), Decimal("0"))),
        average_payout_percentage=average_percentage.quantize(Decimal("0.0001")),
    )
    return PayoutReport(
        period_start=period_start,
        period_end=period_end,
        gyms=ordered,
        summary=summary,
    )


def report_to_payload(report: PayoutReport) -> dict[str, object]:
    return {
        "period": {
            "start": report.period_start.isoformat(),
            "end": report.period_end.isoformat(),
        },
        "summary": {
            "total_gyms": report.summary.total_gyms,
            "total_bookings": report.summary.total_bookings,
            "total_revenue": str(report.summary.total_revenue),
            "total_payouts": str(report.summary.total_payouts),
            "average_payout_percentage": str(report.summary.average_payout_percentage),
        },
        "gyms": [
            {
                "gym_id": str(gym.gym_id),
                "gym_name": gym.gym_name,
                "payout_percentage": str(gym.payout_percentage),
                "total_bookings": gym.total_bookings,
                "total_revenue": str(gym.total_revenue),
                "total_payout": str(gym.total_payout),
                "classes": [
                    {
                        "class_id": str(item.class_id),
                        "title": item.title,
                        "date": item.class_date.isoformat(),
                        "bookings": item.bookings,
                        "revenue": str(item.revenue),
                        "payout": str(item.payout),
                    }
                    for item in gym.classes
                ],
            }
            for gym in report.gyms
        ],
    }
