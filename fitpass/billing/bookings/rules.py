from __future__ import annotations

from datetime import datetime

from fitpass.billing.bookings.types import REASON_EARLY, REASON_LATE, CancellationQuote
from fitpass.billing.policy import CancellationPolicy
from fitpass.billing.time import as_utc


def hours_until(start_time: datetime, now_utc: datetime) -> float:
    return (as_utc(start_time) - as_utc(now_utc)).total_seconds() / 3600


def evaluate_cancellation(
    *,
    booking_status: str,
    class_start_time: datetime,
    credits_used: int,
    now_utc: datetime,
    policy: CancellationPolicy,
) -> CancellationQuote:
    hours = hours_until(class_start_time, now_utc)
    blocked_by: str | None = None
    if booking_status == "cancelled":
        blocked_by = "already_cancelled"
    elif booking_status == "completed" or hours <= 0:
        blocked_by = "class_started"

    if blocked_by is not None:
        return CancellationQuote(
            can_cancel=False,
            free_cancel=False,
            hours_until_start=max(0.0, hours),
            free_window_hours=policy.free_window_hours,
            refund_credits=0,
            penalty_credits=0,
            reason=None,
            blocked_by=blocked_by,
        )

    # exactly at the window boundary is late
    free_cancel = hours > policy.free_window_hours
    return CancellationQuote(
        can_cancel=True,
        free_cancel=free_cancel,
        hours_until_start=hours,
        free_window_hours=policy.free_window_hours,
        refund_credits=max(0, credits_used) if free_cancel else 0,
        penalty_credits=0 if free_cancel else policy.penalty_credits,
        reason=REASON_EARLY if free_cancel else REASON_LATE,
    )


def cancellation_message(quote: CancellationQuote) -> str:
    if quote.free_cancel:
        if quote.refund_credits > 0:
            return f"Booking cancelled. {quote.refund_credits} credit(s) refunded."
        return "Booking cancelled."
    if quote.penalty_credits > 0:
        return (
            "Booking cancelled. Cancellations within "
            f"{quote.free_window_hours} hours of class start incur a "
            f"{quote.penalty_credits} credit penalty."
        )
    return "Booking cancelled. Late cancellations are not refunded."
