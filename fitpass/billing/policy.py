from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

DEFAULT_TIER = "t1"


@dataclass(frozen=True, slots=True)
class TierPolicy:
    code: str
    name: str
    monthly_credits: int
    credit_cap: int
    rollover_allowed: bool
    max_rollover: int
    price_usd: Decimal
    price_ref: str


@dataclass(frozen=True, slots=True)
class PackSpec:
    code: str
    credits: int
    price_usd: Decimal
    price_ref: str


@dataclass(frozen=True, slots=True)
class TouristPassSpec:
    code: str
    name: str
    duration_days: int
    classes: int
    price_usd: Decimal
    price_ref: str


@dataclass(frozen=True, slots=True)
class CancellationPolicy:
    free_window_hours: int = 6
    penalty_credits: int = 2


@dataclass(frozen=True, slots=True)
class ExpirationPolicy:
    topup_days: int = 90


@dataclass(frozen=True, slots=True)
class PayoutPolicy:
    percentage: Decimal = Decimal("0.70")
    default_base_price: Decimal = Decimal("15.00")
    default_window_days: int = 14


class PolicyValidationError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class BillingPolicy:
    tiers: dict[str, TierPolicy]
    packs: dict[str, PackSpec]
    tourist_passes: dict[str, TouristPassSpec]
    cancellation: CancellationPolicy = field(default_factory=CancellationPolicy)
    expiration: ExpirationPolicy = field(default_factory=ExpirationPolicy)
    payout: PayoutPolicy = field(default_factory=PayoutPolicy)
    freeze_price_usd: Decimal = Decimal("5.00")

    def tier(self, code: str | None) -> TierPolicy:
        if code is not None and code in self.tiers:
            return self.tiers[code]
        return self.tiers[DEFAULT_TIER]

    def get_pack(self, code: str) -> PackSpec | None:
        return self.packs.get(code)

    def get_tourist_pass(self, code: str) -> TouristPassSpec | None:
        return self.tourist_passes.get(code)

    def is_within_cap(self, *, current: int, add: int, tier: str | None) -> bool:
        return current + add <= self.tier(tier).credit_cap

    def rollover_allowance(self, *, current: int, tier: str | None) -> int:
        tier_policy = self.tier(tier)
        if not tier_policy.rollover_allowed:
            return 0
        return max(0, min(current, tier_policy.max_rollover))

    def validate(self) -> None:
        if DEFAULT_TIER not in self.tiers:
            raise PolicyValidationError(f"default tier {DEFAULT_TIER} is not configured")
        for code, tier in self.tiers.items():
            if tier.monthly_credits <= 0:
                raise PolicyValidationError(f"{code}: monthly_credits must be positive")
            if tier.credit_cap <= tier.monthly_credits:
                raise PolicyValidationError(f"{code}: credit_cap must exceed monthly_credits")
            if tier.rollover_allowed and not (
                0 < tier.max_rollover <= min(tier.monthly_credits, tier.credit_cap)
            ):
                raise PolicyValidationError(
                    f"{code}: max_rollover must be within 1..min(monthly_credits, credit_cap)"
                )
        for code, pack in self.packs.items():
            if pack.credits <= 0:
                raise PolicyValidationError(f"pack {code}: credits must be positive")
        for code, pass_offer in self.tourist_passes.items():
            if pass_offer.duration_days <= 0 or pass_offer.classes <= 0:
                raise PolicyValidationError(f"tourist pass {code}: duration and classes must be positive")
        if self.cancellation.penalty_credits < 0 or self.cancellation.free_window_hours < 0:
            raise PolicyValidationError("cancellation policy values must be non-negative")
        if not Decimal("0") < self.payout.percentage <= Decimal("1"):
            raise PolicyValidationError("payout percentage must be within (0, 1]")


DEFAULT_BILLING_POLICY = BillingPolicy(
    tiers={
        "t1": TierPolicy(
            code="t1",
            name="Basic",
            monthly_credits=5,
            credit_cap=10,
            rollover_allowed=False,
            max_rollover=0,
            price_usd=Decimal("25.00"),
            price_ref="price_basic_test",
        ),
        "t2": TierPolicy(
            code="t2",
            name="Premium",
            monthly_credits=12,
            credit_cap=24,
            rollover_allowed=True,
            max_rollover=12,
            price_usd=Decimal("45.00"),
            price_ref="price_premium_test",
        ),
        "t3": TierPolicy(
            code="t3",
            name="Unlimited",
            monthly_credits=20,
            credit_cap=40,
            rollover_allowed=True,
            max_rollover=20,
            price_usd=Decimal("65.00"),
            price_ref="price_unlimited_test",
        ),
    },
    packs={
        "starter": PackSpec(
            code="starter",
            credits=12,
            price_usd=Decimal("25.00"),
            price_ref="price_starter_test",
        ),
        "standard": PackSpec(
            code="standard",
            credits=33,
            price_usd=Decimal("50.00"),
            price_ref="price_standard_test",
        ),
        "premium": PackSpec(
            code="premium",
            credits=70,
            price_usd=Decimal("90.00"),
            price_ref="price_premium_pack_test",
        ),
    },
    tourist_passes={
        "tourist_3day": TouristPassSpec(
            code="tourist_3day",
            name="3-Day Pass",
            duration_days=3,
            classes=5,
            price_usd=Decimal("50.00"),
            price_ref="price_tourist_3day_test",
        ),
        "tourist_7day": TouristPassSpec(
            code="tourist_7day",
            name="7-Day Pass",
            duration_days=7,
            classes=10,
            price_usd=Decimal("85.00"),
            price_ref="price_tourist_7day_test",
        ),
    },
)
DEFAULT_BILLING_POLICY.validate()
