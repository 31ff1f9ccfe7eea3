from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.db.repo.credit_ledger_repo import CreditLedgerRepo
from fitpass.workers.tasks import monthly_grants
from fitpass.workers.tasks.monthly_grants_schedule import configure_monthly_grants_schedule
from tests.billing.billing_fixtures import add_entry, create_profile, ledger_entries

UTC = timezone.utc
GRANT_NOW = datetime(2026, 3, 28, 0, 15, tzinfo=UTC)


def _use_test_db(monkeypatch, session_factory, *, is_production: bool = True) -> None:
    monkeypatch.setattr(monthly_grants, "SessionLocal", session_factory)
    monkeypatch.setattr(
        monthly_grants,
        "get_settings",
        lambda: SimpleNamespace(monthly_grant_day=28, is_production=is_production),
    )


async def _seed_members(session_factory) -> dict[str, object]:
    async with session_factory.begin() as session:
        premium = await create_profile(session, tier="t2")
        basic = await create_profile(session, tier="t1")
        granted = await create_profile(session, tier="t3")
        frozen = await create_profile(session, tier="t3", frozen=True)
        untiered = await create_profile(session, tier=None)
        await add_entry(session, user_id=premium, delta=20, source="refund:seed")
        await add_entry(session, user_id=basic, delta=3, source="refund:seed")
        await add_entry(
            session,
            user_id=granted,
            delta=20,
            created_at=datetime(2026, 3, 1, 0, 15, tzinfo=UTC),
        )
    return {
        "premium": premium,
        "basic": basic,
        "granted": granted,
        "frozen": frozen,
        "untiered": untiered,
    }


def test_is_grant_day() -> None:
    assert monthly_grants.is_grant_day(now_utc=GRANT_NOW, grant_day=28, is_production=True) is True
    assert (
        monthly_grants.is_grant_day(
            now_utc=datetime(2026, 3, 27, tzinfo=UTC), grant_day=28, is_production=True
        )
        is False
    )
    assert (
        monthly_grants.is_grant_day(
            now_utc=datetime(2026, 3, 27, tzinfo=UTC), grant_day=28, is_production=False
        )
        is True
    )


def test_schedule_runs_on_configured_day() -> None:
    app = SimpleNamespace(conf=SimpleNamespace(beat_schedule={}))

    configure_monthly_grants_schedule(app, day_of_month=15)

    entry = app.conf.beat_schedule["monthly-credit-grants"]
    assert entry["task"] == "fitpass.workers.tasks.monthly_grants.run_monthly_grants"
    assert entry["schedule"].day_of_month == {15}


async def test_run_monthly_grants_grants_each_eligible_member_once(
    session_factory, monkeypatch
) -> None:
    _use_test_db(monkeypatch, session_factory)
    members = await _seed_members(session_factory)

    first = await monthly_grants.run_monthly_grants_async(now_utc=GRANT_NOW)
    second = await monthly_grants.run_monthly_grants_async(now_utc=GRANT_NOW)

    assert first == {
        "ran": True,
        "eligible": 3,
        "granted": 2,
        "already_granted": 1,
        "skipped": 0,
        "failed": 0,
    }
    assert second["granted"] == 0
    assert second["already_granted"] == 3

    async with session_factory() as session:
        premium_entries = await ledger_entries(session, members["premium"])
        premium_balance = await CreditLedgerService.get_active_credits(
            session, user_id=members["premium"], now_utc=GRANT_NOW
        )
        basic_balance = await CreditLedgerService.get_active_credits(
            session, user_id=members["basic"], now_utc=GRANT_NOW
        )
        frozen_entries = await ledger_entries(session, members["frozen"])

    assert [(entry.delta, entry.source) for entry in premium_entries[1:]] == [
        (-8, "rollover_trim"),
        (12, "monthly"),
    ]
    assert premium_balance == 24
    assert basic_balance == 5
    assert frozen_entries == []

    status = await monthly_grants.get_monthly_grants_status_async(now_utc=GRANT_NOW)
    assert status["grant_day"] == 28
    assert status["is_grant_day"] is True
    assert status["eligible_users"] == 3
    assert status["last_grant_at"] is not None


async def test_run_monthly_grants_skips_outside_grant_day(session_factory, monkeypatch) -> None:
    _use_test_db(monkeypatch, session_factory)

    result = await monthly_grants.run_monthly_grants_async(now_utc=datetime(2026, 3, 27, tzinfo=UTC))

    assert result == {"ran": False, "reason": "not_grant_day", "grant_day": 28}


async def test_run_monthly_grants_rechecks_under_lock_when_snapshot_is_stale(
    session_factory, monkeypatch
) -> None:
    _use_test_db(monkeypatch, session_factory)
    members = await _seed_members(session_factory)

    async def _stale_snapshot(session, *, source, since_utc):
        # both runs read the batch snapshot before either one granted
        return set()

    monkeypatch.setattr(
        CreditLedgerRepo, "list_user_ids_with_source_since", staticmethod(_stale_snapshot)
    )

    first = await monthly_grants.run_monthly_grants_async(now_utc=GRANT_NOW)
    second = await monthly_grants.run_monthly_grants_async(now_utc=GRANT_NOW)

    assert first["granted"] == 2
    assert first["already_granted"] == 1
    assert second["granted"] == 0
    assert second["already_granted"] == 3

    async with session_factory() as session:
        premium_entries = await ledger_entries(session, members["premium"])
        premium_balance = await CreditLedgerService.get_active_credits(
            session, user_id=members["premium"], now_utc=GRANT_NOW
        )

    assert [entry.source for entry in premium_entries].count("monthly") == 1
    assert premium_balance == 24


async def test_run_monthly_grants_force_ignores_day(session_factory, monkeypatch) -> None:
    _use_test_db(monkeypatch, session_factory)
    await _seed_members(session_factory)

    result = await monthly_grants.run_monthly_grants_async(
        now_utc=datetime(2026, 3, 27, tzinfo=UTC), force=True
    )

    assert result["ran"] is True
    assert result["granted"] == 2


async def test_run_monthly_grants_counts_failures(session_factory, monkeypatch) -> None:
    _use_test_db(monkeypatch, session_factory)
    await _seed_members(session_factory)

    async def _failing_grant(*args, **kwargs):
        raise SQLAlchemyError("ledger unavailable")

    monkeypatch.setattr(CreditLedgerService, "grant_monthly_credits", staticmethod(_failing_grant))

    result = await monthly_grants.run_monthly_grants_async(now_utc=GRANT_NOW)

    assert result["failed"] == 2
    assert result["granted"] == 0


def test_run_monthly_grants_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, force: bool = False) -> dict[str, object]:
        return {"ran": True, "force": force}

    async def fake_dispose() -> None:
        return None

    monkeypatch.setattr(monthly_grants, "run_monthly_grants_async", fake_async)
    monkeypatch.setattr("fitpass.workers.asyncio_runner.dispose_engine", fake_dispose)

    assert monthly_grants.run_monthly_grants(force=True) == {"ran": True, "force": True}


def test_run_async_job_disposes_pool_on_failure(monkeypatch) -> None:
    from fitpass.workers.asyncio_runner import run_async_job

    disposed: list[str] = []

    async def fake_dispose() -> None:
        disposed.append("dispose")

    async def failing_job() -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr("fitpass.workers.asyncio_runner.dispose_engine", fake_dispose)

    with pytest.raises(RuntimeError):
        run_async_job(failing_job(), job_name="failing")

    assert disposed == ["dispose", "dispose"]
