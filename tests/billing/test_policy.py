from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from fitpass.billing.policy import (
    DEFAULT_BILLING_POLICY,
    CancellationPolicy,
    PayoutPolicy,
    PolicyValidationError,
)


def test_default_tiers_match_published_plans() -> None:
    tiers = DEFAULT_BILLING_POLICY.tiers

    assert [(code, tier.monthly_credits, tier.credit_cap) for code, tier in tiers.items()] == [
        ("t1", 5, 10),
        ("t2", 12, 24),
        ("t3", 20, 40),
    ]
    assert tiers["t1"].rollover_allowed is False
    assert tiers["t2"].max_rollover == 12


def test_unknown_tier_falls_back_to_basic() -> None:
    assert DEFAULT_BILLING_POLICY.tier("gold").code == "t1"
    assert DEFAULT_BILLING_POLICY.tier(None).code == "t1"


def test_is_within_cap_allows_landing_exactly_on_cap() -> None:
    assert DEFAULT_BILLING_POLICY.is_within_cap(current=12, add=12, tier="t2") is True
    assert DEFAULT_BILLING_POLICY.is_within_cap(current=13, add=12, tier="t2") is False


def test_rollover_allowance() -> None:
    assert DEFAULT_BILLING_POLICY.rollover_allowance(current=30, tier="t3") == 20
    assert DEFAULT_BILLING_POLICY.rollover_allowance(current=8, tier="t2") == 8
    assert DEFAULT_BILLING_POLICY.rollover_allowance(current=8, tier="t1") == 0


def test_catalog_lookups() -> None:
    assert DEFAULT_BILLING_POLICY.get_pack("standard").credits == 33
    assert DEFAULT_BILLING_POLICY.get_pack("mega") is None
    assert DEFAULT_BILLING_POLICY.get_tourist_pass("tourist_7day").classes == 10


def test_validate_rejects_rollover_above_monthly_grant() -> None:
    tiers = dict(DEFAULT_BILLING_POLICY.tiers)
    tiers["t2"] = replace(tiers["t2"], max_rollover=30)
    policy = replace(DEFAULT_BILLING_POLICY, tiers=tiers)

    with pytest.raises(PolicyValidationError, match="max_rollover"):
        policy.validate()


def test_validate_rejects_cap_not_above_grant() -> None:
    tiers = dict(DEFAULT_BILLING_POLICY.tiers)
    tiers["t1"] = replace(tiers["t1"], credit_cap=5)
    policy = replace(DEFAULT_BILLING_POLICY, tiers=tiers)

    with pytest.raises(PolicyValidationError, match="credit_cap"):
        policy.validate()


def test_validate_rejects_negative_penalty_and_bad_payout_share() -> None:
    with pytest.raises(PolicyValidationError):
        replace(DEFAULT_BILLING_POLICY, cancellation=CancellationPolicy(penalty_credits=-1)).validate()
    with pytest.raises(PolicyValidationError):
        replace(DEFAULT_BILLING_POLICY, payout=PayoutPolicy(percentage=Decimal("1.5"))).validate()
