from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from fitpass.billing.errors import (
    AccountFrozenError,
    ActiveTouristPassExistsError,
    InvalidCheckoutMetadataError,
    ProductNotFoundError,
    ProfileNotFoundError,
    TierCapExceededError,
)
from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.billing.passes.service import TouristPassService
from fitpass.billing.purchases import PurchaseService
from fitpass.db.repo.profiles_repo import ProfilesRepo
from fitpass.db.repo.tourist_passes_repo import TouristPassesRepo
from tests.billing.billing_fixtures import (
    NOW,
    add_entry,
    audit_actions,
    create_profile,
    ledger_entries,
)


async def test_prepare_top_up_within_cap(session_factory) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session, tier="t2")
        await add_entry(session, user_id=user_id, delta=12)

        intent = await PurchaseService.prepare_top_up(
            session, user_id=user_id, pack_code="starter", now_utc=NOW
        )

    assert intent.kind == "topup"
    assert intent.credits == 12
    assert intent.credits_before == 12


async def test_prepare_top_up_over_cap_reports_overflow(session_factory) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session, tier="t1")
        await add_entry(session, user_id=user_id, delta=5)

        with pytest.raises(TierCapExceededError) as exc_info:
            await PurchaseService.prepare_top_up(
                session, user_id=user_id, pack_code="starter", now_utc=NOW
            )

    assert exc_info.value.cap == 10
    assert exc_info.value.projected == 17
    assert exc_info.value.overflow == 7


async def test_prepare_top_up_guards(session_factory) -> None:
    async with session_factory.begin() as session:
        frozen_id = await create_profile(session, frozen=True)
        user_id = await create_profile(session)

        with pytest.raises(ProfileNotFoundError):
            await PurchaseService.prepare_top_up(session, user_id=uuid4(), pack_code="starter", now_utc=NOW)
        with pytest.raises(AccountFrozenError):
            await PurchaseService.prepare_top_up(
                session, user_id=frozen_id, pack_code="starter", now_utc=NOW
            )
        with pytest.raises(ProductNotFoundError):
            await PurchaseService.prepare_top_up(session, user_id=user_id, pack_code="mega", now_utc=NOW)


async def test_top_up_options_disabled_while_frozen(session_factory) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session, tier="t3", frozen=True)

        options = await PurchaseService.get_top_up_options(session, user_id=user_id, now_utc=NOW)

    assert options.frozen is True
    assert options.credit_cap == 40
    assert all(option.can_purchase is False for option in options.options)


async def test_prepare_tourist_pass_rejects_second_active_pass(session_factory) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session)
        intent = await PurchaseService.prepare_tourist_pass(
            session, user_id=user_id, pass_code="tourist_3day", now_utc=NOW
        )
        await TouristPassService.add_tourist_pass(
            session,
            user_id=user_id,
            duration_days=3,
            total_classes=5,
            source_ref="cs_mock_first",
            now_utc=NOW,
        )

        with pytest.raises(ActiveTouristPassExistsError):
            await PurchaseService.prepare_tourist_pass(
                session, user_id=user_id, pass_code="tourist_7day", now_utc=NOW
            )
        with pytest.raises(ProductNotFoundError):
            await PurchaseService.prepare_tourist_pass(
                session, user_id=user_id, pass_code="tourist_30day", now_utc=NOW
            )

    assert intent.pass_type == "tourist_3day"


async def test_apply_top_up_checkout_is_idempotent(session_factory) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session, tier="t2")
        intent = await PurchaseService.prepare_top_up(
            session, user_id=user_id, pack_code="starter", now_utc=NOW
        )
        metadata = intent.to_metadata(now_utc=NOW)

        first = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_abc", metadata=metadata, now_utc=NOW
        )
        replay = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_abc", metadata=metadata, now_utc=NOW + timedelta(minutes=5)
        )
        balance = await CreditLedgerService.get_active_credits(session, user_id=user_id, now_utc=NOW)
        actions = await audit_actions(session, user_id)

    assert first.idempotent_replay is False
    assert first.credits_added == 12
    assert replay.idempotent_replay is True
    assert replay.credits_added == 0
    assert balance == 12
    assert actions == ["topup"]


async def test_apply_tourist_pass_checkout_creates_single_pass(session_factory) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session)
        metadata = {"kind": "tourist_pass", "user_id": str(user_id), "pass_type": "tourist_7day"}

        first = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_pass", metadata=metadata, now_utc=NOW
        )
        replay = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_pass", metadata=metadata, now_utc=NOW
        )
        active = await TouristPassService.has_active_tourist_pass(session, user_id=user_id, now_utc=NOW)

    assert first.idempotent_replay is False
    assert replay.idempotent_replay is True
    assert replay.tourist_pass_id == first.tourist_pass_id
    assert active is not None
    assert active.remaining == 10


async def test_apply_subscription_checkout_changes_tier(session_factory) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session, tier="t1")
        metadata = {"kind": "subscription", "user_id": str(user_id), "tier": "t3"}

        first = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_sub", metadata=metadata, now_utc=NOW
        )
        replay = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_sub", metadata=metadata, now_utc=NOW
        )
        profile = await ProfilesRepo.get_by_id(session, user_id)
        actions = await audit_actions(session, user_id)

    assert first.tier == "t3"
    assert first.idempotent_replay is False
    assert replay.idempotent_replay is True
    assert profile is not None
    assert profile.tier == "t3"
    assert actions == ["subscription_change"]


async def test_apply_checkout_rejects_bad_metadata(session_factory) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(InvalidCheckoutMetadataError):
            await PurchaseService.apply_completed_checkout(
                session, checkout_ref="cs_mock_bad", metadata={"kind": "topup"}, now_utc=NOW
            )


async def test_apply_top_up_locks_profile_before_dedupe_read(session_factory, monkeypatch) -> None:
    calls: list[str] = []
    lock_profile = ProfilesRepo.get_by_id_for_update
    has_top_up = CreditLedgerService.has_top_up_for_ref

    async def recording_lock(session, user_id):
        calls.append("lock_profile")
        return await lock_profile(session, user_id)

    async def recording_dedupe(session, *, user_id, source_ref):
        calls.append("dedupe_read")
        return await has_top_up(session, user_id=user_id, source_ref=source_ref)

    monkeypatch.setattr(ProfilesRepo, "get_by_id_for_update", staticmethod(recording_lock))
    monkeypatch.setattr(CreditLedgerService, "has_top_up_for_ref", staticmethod(recording_dedupe))

    async with session_factory.begin() as session:
        user_id = await create_profile(session, tier="t2")
        metadata = {"kind": "topup", "user_id": str(user_id), "pack_type": "starter", "credits": "12"}

        result = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_locked", metadata=metadata, now_utc=NOW
        )

    assert result.credits_added == 12
    assert calls == ["lock_profile", "dedupe_read"]


async def test_apply_top_up_for_unknown_profile_writes_nothing(session_factory) -> None:
    unknown_user = uuid4()
    metadata = {"kind": "topup", "user_id": str(unknown_user), "pack_type": "starter", "credits": "12"}

    async with session_factory.begin() as session:
        with pytest.raises(ProfileNotFoundError):
            await PurchaseService.apply_completed_checkout(
                session, checkout_ref="cs_mock_ghost", metadata=metadata, now_utc=NOW
            )
        assert await ledger_entries(session, unknown_user) == []


async def test_apply_tourist_pass_checkout_losing_insert_race_is_replay(
    session_factory, monkeypatch
) -> None:
    async with session_factory.begin() as session:
        user_id = await create_profile(session)
        metadata = {"kind": "tourist_pass", "user_id": str(user_id), "pass_type": "tourist_3day"}
        first = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_race", metadata=metadata, now_utc=NOW
        )

    find_by_ref = TouristPassesRepo.get_by_source_ref
    lookups: list[str] = []

    async def dedupe_read_before_commit(session, source_ref):
        lookups.append(source_ref)
        if len(lookups) == 1:
            # the other delivery has not committed when this one checks
            return None
        return await find_by_ref(session, source_ref)

    monkeypatch.setattr(
        TouristPassesRepo, "get_by_source_ref", staticmethod(dedupe_read_before_commit)
    )

    async with session_factory.begin() as session:
        replay = await PurchaseService.apply_completed_checkout(
            session, checkout_ref="cs_mock_race", metadata=metadata, now_utc=NOW
        )
        latest = await TouristPassesRepo.get_latest(session, user_id=user_id)
        actions = await audit_actions(session, user_id)

    assert replay.idempotent_replay is True
    assert replay.tourist_pass_id == first.tourist_pass_id
    assert latest is not None
    assert str(latest.id) == first.tourist_pass_id
    assert actions == ["tourist_pass_purchase"]
