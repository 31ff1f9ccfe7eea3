from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from fitpass.billing.payouts.rules import aggregate_payouts, report_to_payload
from fitpass.billing.payouts.types import AttendedBooking, GymPayoutTerms
from fitpass.billing.policy import PayoutPolicy

UTC = timezone.utc
GYM_A = UUID("00000000-0000-0000-0000-00000000000a")
GYM_B = UUID("00000000-0000-0000-0000-00000000000b")


def attended(
    *,
    gym_id: UUID,
    class_id: UUID,
    price: str | None,
    start: datetime = datetime(2026, 3, 5, 18, 0, tzinfo=UTC),
    gym_name: str = "Gym",
    title: str = "Spin",
) -> AttendedBooking:
    return AttendedBooking(
        booking_id=uuid4(),
        gym_id=gym_id,
        gym_name=gym_name,
        class_id=class_id,
        class_title=title,
        class_start=start,
        class_price=Decimal(price) if price is not None else None,
    )


def test_aggregate_payouts_groups_by_gym_and_class_date() -> None:
    spin = uuid4()
    boxing = uuid4()
    bookings = [
        attended(gym_id=GYM_A, class_id=spin, price="20.00", gym_name="Riverside"),
        attended(gym_id=GYM_A, class_id=spin, price="20.00", gym_name="Riverside"),
        attended(
            gym_id=GYM_A,
            class_id=spin,
            price="20.00",
            gym_name="Riverside",
            start=datetime(2026, 3, 6, 18, 0, tzinfo=UTC),
        ),
        attended(gym_id=GYM_B, class_id=boxing, price=None, gym_name="Northside", title="Boxing"),
    ]

    report = aggregate_payouts(
        bookings,
        terms={GYM_A: GymPayoutTerms(payout_percentage=Decimal("0.75"), base_price=Decimal("15.00"))},
        period_start=date(2026, 3, 1),
        period_end=date(2026, 3, 14),
        policy=PayoutPolicy(),
    )

    riverside, northside = report.gyms
    assert riverside.gym_id == GYM_A
    assert riverside.total_bookings == 3
    assert riverside.total_revenue == Decimal("60.00")
    assert riverside.total_payout == Decimal("45.00")
    assert [(item.class_date, item.bookings) for item in riverside.classes] == [
        (date(2026, 3, 5), 2),
        (date(2026, 3, 6), 1),
    ]
    assert northside.total_revenue == Decimal("15.00")
    assert northside.total_payout == Decimal("10.50")
    assert northside.payout_percentage == Decimal("0.70")

    assert report.summary.total_gyms == 2
    assert report.summary.total_bookings == 4
    assert report.summary.total_payouts == Decimal("55.50")
    assert report.summary.average_payout_percentage == Decimal("0.7250")


def test_aggregate_payouts_rounds_to_cents() -> None:
    report = aggregate_payouts(
        [attended(gym_id=GYM_A, class_id=uuid4(), price="9.99")],
        terms={GYM_A: GymPayoutTerms(payout_percentage=Decimal("0.3333"), base_price=Decimal("15.00"))},
        period_start=date(2026, 3, 1),
        period_end=date(2026, 3, 14),
        policy=PayoutPolicy(),
    )

    assert report.gyms[0].total_payout == Decimal("3.33")


def test_empty_period_yields_zero_summary() -> None:
    report = aggregate_payouts(
        [],
        terms={},
        period_start=date(2026, 3, 1),
        period_end=date(2026, 3, 14),
        policy=PayoutPolicy(),
    )

    assert report.gyms == []
    assert report.summary.total_payouts == Decimal("0.00")
    assert report.summary.average_payout_percentage == Decimal("0.0000")


def test_report_payload_serialises_money_as_strings() -> None:
    class_id = uuid4()
    report = aggregate_payouts(
        [attended(gym_id=GYM_A, class_id=class_id, price="20.00", gym_name="Riverside")],
        terms={},
        period_start=date(2026, 3, 1),
        period_end=date(2026, 3, 14),
        policy=PayoutPolicy(),
    )

    payload = report_to_payload(report)

    assert payload["period"] == {"start": "2026-03-01", "end": "2026-03-14"}
    assert payload["summary"]["total_payouts"] == "14.00"
    assert payload["gyms"][0]["classes"][0]["class_id"] == str(class_id)
    assert payload["gyms"][0]["classes"][0]["date"] == "2026-03-05"
