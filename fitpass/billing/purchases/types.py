from __future__ import annotations

from dataclasses import dataclass, field

from fitpass.billing.ledger.types import TopUpEligibility


@dataclass(slots=True)
class TopUpOptions:
    tier: str
    current_credits: int
    credit_cap: int
    frozen: bool
    options: list[TopUpEligibility] = field(default_factory=list)


@dataclass(slots=True)
class PurchaseApplyResult:
    kind: str
    checkout_ref: str
    idempotent_replay: bool
    credits_added: int = 0
    tourist_pass_id: str | None = None
    tier: str | None = None
