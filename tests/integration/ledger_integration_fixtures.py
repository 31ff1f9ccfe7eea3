from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fitpass.db.models.fitness_classes import FitnessClass
from fitpass.db.session import SessionLocal
from tests.billing.billing_fixtures import add_entry, create_class, create_profile

UTC = timezone.utc


async def create_member(*, tier: str = "t2", credits: int = 0, now_utc: datetime) -> UUID:
    async with SessionLocal.begin() as session:
        user_id = await create_profile(session, tier=tier, now_utc=now_utc)
        if credits:
            await add_entry(session, user_id=user_id, delta=credits, created_at=now_utc)
    return user_id


async def create_open_class(*, capacity: int, credit_cost: int, now_utc: datetime) -> FitnessClass:
    async with SessionLocal.begin() as session:
        return await create_class(
            session, capacity=capacity, credit_cost=credit_cost, now_utc=now_utc
        )
