from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date

from fitpass.billing.ledger.types import (
    CreditAllocation,
    CreditBreakdown,
    ExpiringCredits,
    LedgerRow,
    SpendPlan,
)
from fitpass.billing.policy import TierPolicy


def is_active(row: LedgerRow, today: date) -> bool:
    return row.expires_at is None or row.expires_at >= today


def active_rows(rows: Iterable[LedgerRow], today: date) -> list[LedgerRow]:
    return [row for row in rows if is_active(row, today)]


def raw_active_sum(rows: Iterable[LedgerRow], today: date) -> int:
    return sum(row.delta for row in rows if is_active(row, today))


def active_balance(rows: Iterable[LedgerRow], today: date) -> int:
    return max(0, raw_active_sum(rows, today))


def _fifo_key(row: LedgerRow) -> tuple[int, date, object, int]:
    # expires_at ascending with nulls last, then creation order
    return (
        1 if row.expires_at is None else 0,
        row.expires_at or date.max,
        row.created_at,
        row.id,
    )


def remaining_by_row(rows: Sequence[LedgerRow], today: date) -> list[tuple[LedgerRow, int]]:
    """Unconsumed amount of each positive row.

    Negative entries carry the expiry of the rows they were drawn from, so they
    are netted against the positive rows of the same expiry bucket, oldest first.
    """
    positives: dict[date | None, list[LedgerRow]] = defaultdict(list)
    consumed: dict[date | None, int] = defaultdict(int)
    for row in active_rows(rows, today):
        if row.delta > 0:
            positives[row.expires_at].append(row)
        else:
            consumed[row.expires_at] += -row.delta

    remaining: list[tuple[LedgerRow, int]] = []
    for bucket, bucket_rows in positives.items():
        to_net = consumed.get(bucket, 0)
        for row in sorted(bucket_rows, key=_fifo_key):
            taken = min(row.delta, to_net)
            to_net -= taken
            if row.delta - taken > 0:
                remaining.append((row, row.delta - taken))
    remaining.sort(key=lambda item: _fifo_key(item[0]))
    return remaining


def plan_fifo_spend(rows: Sequence[LedgerRow], *, amount: int, today: date) -> SpendPlan:
    if amount <= 0:
        raise ValueError("spend amount must be positive")

    remaining = remaining_by_row(rows, today)
    available = min(sum(left for _, left in remaining), active_balance(rows, today))
    plan = SpendPlan(requested=amount, available=available)
    if available < amount:
        return plan

    still_needed = amount
    for row, left in remaining:
        if still_needed == 0:
            break
        take = min(left, still_needed)
        plan.allocations.append(
            CreditAllocation(amount=take, expires_at=row.expires_at, ledger_entry_id=row.id)
        )
        still_needed -= take
    return plan


def rollover_trim(current: int, tier: TierPolicy) -> int:
    """Credits to remove before a monthly grant; zero when nothing exceeds the rollover."""
    allowed = min(current, tier.max_rollover) if tier.rollover_allowed else 0
    allowed = max(0, allowed)
    return current - allowed if current > allowed else 0


def credit_breakdown(rows: Iterable[LedgerRow], today: date) -> CreditBreakdown:
    non_expiring_sum = 0
    buckets: dict[date, int] = defaultdict(int)
    for row in active_rows(rows, today):
        if row.expires_at is None:
            non_expiring_sum += row.delta
        else:
            buckets[row.expires_at] += row.delta

    expiring = [
        ExpiringCredits(amount=amount, expires_at=expires_at)
        for expires_at, amount in sorted(buckets.items())
        if amount > 0
    ]
    return CreditBreakdown(
        total=max(0, non_expiring_sum + sum(item.amount for item in expiring)),
        expiring=expiring,
        non_expiring=max(0, non_expiring_sum),
    )
