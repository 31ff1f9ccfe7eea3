from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

SOURCE_MONTHLY = "monthly"
SOURCE_SPEND = "spend"
SOURCE_ROLLOVER_TRIM = "rollover_trim"
SOURCE_TOPUP_PREFIX = "topup:"
SOURCE_PENALTY_PREFIX = "penalty:"
SOURCE_REFUND_PREFIX = "refund:"


@dataclass(frozen=True, slots=True)
class LedgerRow:
    id: int
    delta: int
    source: str
    expires_at: date | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class CreditAllocation:
    amount: int
    expires_at: date | None
    ledger_entry_id: int | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "amount": self.amount,
            "expires_at": self.expires_at.isoformat() if self.expires_at is not None else None,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> CreditAllocation:
        raw_expires = payload.get("expires_at")
        return cls(
            amount=int(payload["amount"]),  # type: ignore[arg-type]
            expires_at=date.fromisoformat(str(raw_expires)) if raw_expires else None,
        )


@dataclass(slots=True)
class SpendPlan:
    requested: int
    available: int
    allocations: list[CreditAllocation] = field(default_factory=list)

    @property
    def covered(self) -> bool:
        return sum(item.amount for item in self.allocations) == self.requested


@dataclass(slots=True)
class SpendResult:
    success: bool
    amount: int
    balance_before: int
    balance_after: int
    allocations: list[CreditAllocation] = field(default_factory=list)


@dataclass(slots=True)
class MonthlyGrantResult:
    tier: str
    balance_before: int
    trimmed: int
    granted: int
    balance_after: int


@dataclass(frozen=True, slots=True)
class ExpiringCredits:
    amount: int
    expires_at: date


@dataclass(slots=True)
class CreditBreakdown:
    total: int
    expiring: list[ExpiringCredits]
    non_expiring: int


@dataclass(slots=True)
class TopUpEligibility:
    pack_code: str
    credits: int
    can_purchase: bool
    projected: int
    cap: int
