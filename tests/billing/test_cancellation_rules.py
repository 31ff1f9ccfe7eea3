from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fitpass.billing.bookings.rules import cancellation_message, evaluate_cancellation
from fitpass.billing.bookings.types import REASON_EARLY, REASON_LATE
from fitpass.billing.policy import CancellationPolicy

UTC = timezone.utc
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
POLICY = CancellationPolicy()


def quote_for(*, hours: float, status: str = "confirmed", credits_used: int = 3):
    return evaluate_cancellation(
        booking_status=status,
        class_start_time=NOW + timedelta(hours=hours),
        credits_used=credits_used,
        now_utc=NOW,
        policy=POLICY,
    )


def test_cancel_before_window_is_free_and_refunds_credits() -> None:
    quote = quote_for(hours=24)

    assert quote.can_cancel is True
    assert quote.free_cancel is True
    assert quote.refund_credits == 3
    assert quote.penalty_credits == 0
    assert quote.reason == REASON_EARLY


def test_cancel_inside_window_costs_penalty() -> None:
    quote = quote_for(hours=2)

    assert quote.free_cancel is False
    assert quote.refund_credits == 0
    assert quote.penalty_credits == 2
    assert quote.reason == REASON_LATE


def test_cancel_exactly_at_window_boundary_is_late() -> None:
    assert quote_for(hours=6).free_cancel is False
    assert quote_for(hours=6.01).free_cancel is True


def test_pass_paid_booking_refunds_nothing_on_free_cancel() -> None:
    quote = quote_for(hours=24, credits_used=0)

    assert quote.free_cancel is True
    assert quote.refund_credits == 0


def test_started_or_completed_class_cannot_be_cancelled() -> None:
    started = quote_for(hours=-0.5)
    completed = quote_for(hours=3, status="completed")

    assert started.can_cancel is False
    assert started.blocked_by == "class_started"
    assert started.hours_until_start == 0.0
    assert completed.blocked_by == "class_started"


def test_cancelled_booking_is_blocked() -> None:
    quote = quote_for(hours=24, status="cancelled")

    assert quote.can_cancel is False
    assert quote.blocked_by == "already_cancelled"


def test_cancellation_messages() -> None:
    assert cancellation_message(quote_for(hours=24)) == "Booking cancelled. 3 credit(s) refunded."
    assert "2 credit penalty" in cancellation_message(quote_for(hours=1))
    assert cancellation_message(quote_for(hours=24, credits_used=0)) == "Booking cancelled."
