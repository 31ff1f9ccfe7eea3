from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from fitpass.api.routes import account, bookings, checkout, credits, internal_billing, payments
from fitpass.workers.tasks import monthly_grants
from tests.conftest import build_sqlite_engine, create_schema


@pytest.fixture
def api_session_factory(tmp_path, monkeypatch):
    engine = build_sqlite_engine(tmp_path / "fitpass_api.db")
    asyncio.run(create_schema(engine))
    factory = async_sessionmaker(engine, expire_on_commit=False)
    for module in (account, bookings, checkout, credits, internal_billing, payments, monthly_grants):
        monkeypatch.setattr(module, "SessionLocal", factory)
    yield factory
    asyncio.run(engine.dispose())
