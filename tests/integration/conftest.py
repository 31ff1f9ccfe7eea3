from __future__ import annotations

import pytest
from sqlalchemy import text

from fitpass.core.integration_db_safety import assert_safe_integration_db
from fitpass.db.session import engine

TRUNCATE_TABLES = (
    "payout_snapshots",
    "credit_audit_log",
    "bookings",
    "fitness_classes",
    "gym_pricing",
    "gyms",
    "tourist_passes",
    "credit_ledger",
    "profiles",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(autouse=True)
def guard_integration_db_target() -> None:
    try:
        assert_safe_integration_db(str(engine.url))
    except RuntimeError as exc:
        pytest.skip(str(exc))


@pytest.fixture(autouse=True)
async def cleanup_db(guard_integration_db_target) -> None:
    # asyncpg connections must not be reused across event loops
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    # row-level append-only trigger does not fire on TRUNCATE
    async with engine.begin() as conn:
        await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()
