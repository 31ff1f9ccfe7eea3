from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True, slots=True)
class AttendedBooking:
    booking_id: UUID
    gym_id: UUID
    gym_name: str
    class_id: UUID
    class_title: str
    class_start: datetime
    class_price: Decimal | None


@dataclass(frozen=True, slots=True)
class GymPayoutTerms:
    payout_percentage: Decimal
    base_price: Decimal


@dataclass(slots=True)
class ClassPayout:
    class_id: UUID
    title: str
    class_date: date
    bookings: int = 0
    revenue: Decimal = Decimal("0")
    payout: Decimal = Decimal("0")


@dataclass(slots=True)
class GymPayout:
    gym_id: UUID
    gym_name: str
    payout_percentage: Decimal
    total_bookings: int = 0
    total_revenue: Decimal = Decimal("0")
    total_payout: Decimal = Decimal("0")
    classes: list[ClassPayout] = field(default_factory=list)


@dataclass(slots=True)
class PayoutSummary:
    total_gyms: int
    total_bookings: int
    total_revenue: Decimal
    total_payouts: Decimal
    average_payout_percentage: Decimal


@dataclass(slots=True)
class PayoutReport:
    period_start: date
    period_end: date
    gyms: list[GymPayout]
    summary: PayoutSummary
    snapshot_id: int | None = None


@dataclass(frozen=True, slots=True)
class GymPricingEntry:
    pricing_id: int
    gym_id: UUID
    gym_name: str
    payout_percentage: Decimal
    base_price: Decimal
    active: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class PayoutSnapshotEntry:
    snapshot_id: int
    period_start: date
    period_end: date
    period_days: int
    total_gyms: int
    total_bookings: int
    total_revenue: Decimal
    total_payouts: Decimal
    created_by: UUID | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class PayoutSnapshotPage:
    snapshots: list[PayoutSnapshotEntry]
    total: int
    limit: int
    offset: int
