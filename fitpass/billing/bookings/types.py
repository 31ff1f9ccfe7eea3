from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

REASON_EARLY = "early_cancellation"
REASON_LATE = "late_cancellation"


class PaymentMethod(str, Enum):
    TOURIST_PASS = "tourist_pass"
    CREDITS = "credits"


@dataclass(frozen=True, slots=True)
class CancellationQuote:
    can_cancel: bool
    free_cancel: bool
    hours_until_start: float
    free_window_hours: int
    refund_credits: int
    penalty_credits: int
    reason: str | None
    blocked_by: str | None = None


@dataclass(slots=True)
class BookingResult:
    booking_id: UUID
    class_id: UUID
    payment_method: PaymentMethod
    credits_used: int
    balance_after: int
    tourist_pass_id: UUID | None
    pass_classes_remaining: int | None


@dataclass(slots=True)
class CancellationResult:
    booking_id: UUID
    free_cancel: bool
    refund_credits: int
    penalty_credits: int
    balance_before: int
    balance_after: int
    cancelled_at: datetime
    message: str
