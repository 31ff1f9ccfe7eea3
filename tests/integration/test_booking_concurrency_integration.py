from __future__ import annotations

import asyncio
from datetime import datetime

import pytest
from sqlalchemy import func, select

from fitpass.billing.bookings.service import BookingService
from fitpass.billing.errors import (
    ClassFullError,
    DuplicateBookingError,
    InsufficientCreditsError,
    TouristPassExhaustedError,
)
from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.billing.passes.service import TouristPassService
from fitpass.db.models.bookings import Booking
from fitpass.db.session import SessionLocal
from tests.integration.ledger_integration_fixtures import UTC, create_member, create_open_class


@pytest.mark.asyncio
async def test_parallel_spends_never_overdraw() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_member(credits=5, now_utc=now_utc)
    barrier = asyncio.Event()

    async def _spend() -> bool:
        await barrier.wait()
        async with SessionLocal.begin() as session:
            result = await CreditLedgerService.spend_credits_fifo(
                session, user_id=user_id, amount=3, now_utc=now_utc
            )
        return result.success

    tasks = [asyncio.create_task(_spend()) for _ in range(3)]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == [False, False, True]
    async with SessionLocal.begin() as session:
        balance = await CreditLedgerService.get_active_credits(session, user_id=user_id, now_utc=now_utc)
    assert balance == 2


@pytest.mark.asyncio
async def test_parallel_bookings_respect_capacity() -> None:
    now_utc = datetime.now(UTC)
    fitness_class = await create_open_class(capacity=1, credit_cost=3, now_utc=now_utc)
    members = [await create_member(credits=12, now_utc=now_utc) for _ in range(3)]
    barrier = asyncio.Event()

    async def _book(user_id) -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await BookingService.create_booking(
                    session, user_id=user_id, class_id=fitness_class.id, now_utc=now_utc
                )
            return "booked"
        except ClassFullError:
            return "full"

    tasks = [asyncio.create_task(_book(user_id)) for user_id in members]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["booked", "full", "full"]
    async with SessionLocal.begin() as session:
        balances = [
            await CreditLedgerService.get_active_credits(session, user_id=user_id, now_utc=now_utc)
            for user_id in members
        ]
    assert sorted(balances) == [9, 12, 12]


@pytest.mark.asyncio
async def test_parallel_duplicate_booking_charges_once() -> None:
    now_utc = datetime.now(UTC)
    fitness_class = await create_open_class(capacity=10, credit_cost=3, now_utc=now_utc)
    user_id = await create_member(credits=12, now_utc=now_utc)
    barrier = asyncio.Event()

    async def _book() -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await BookingService.create_booking(
                    session, user_id=user_id, class_id=fitness_class.id, now_utc=now_utc
                )
            return "booked"
        except (DuplicateBookingError, InsufficientCreditsError):
            return "rejected"

    tasks = [asyncio.create_task(_book()) for _ in range(2)]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["booked", "rejected"]
    async with SessionLocal.begin() as session:
        confirmed = await session.scalar(
            select(func.count(Booking.id)).where(
                Booking.user_id == user_id,
                Booking.status == "confirmed",
            )
        )
        balance = await CreditLedgerService.get_active_credits(session, user_id=user_id, now_utc=now_utc)
    assert confirmed == 1
    assert balance == 9


@pytest.mark.asyncio
async def test_parallel_pass_consumption_stops_at_total() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_member(now_utc=now_utc)
    async with SessionLocal.begin() as session:
        tourist_pass = await TouristPassService.add_tourist_pass(
            session,
            user_id=user_id,
            duration_days=3,
            total_classes=2,
            source_ref="cs_mock_parallel_pass",
            now_utc=now_utc,
        )
    barrier = asyncio.Event()

    async def _consume() -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await TouristPassService.consume_tourist_pass(session, pass_id=tourist_pass.id)
            return "consumed"
        except TouristPassExhaustedError:
            return "exhausted"

    tasks = [asyncio.create_task(_consume()) for _ in range(4)]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["consumed", "consumed", "exhausted", "exhausted"]
