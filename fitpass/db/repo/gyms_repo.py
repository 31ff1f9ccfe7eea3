from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.gyms import Gym, GymPricing


class GymsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        name: str,
        now_utc: datetime,
        owner_id: UUID | None = None,
    ) -> Gym:
        gym = Gym(name=name, owner_id=owner_id, created_at=now_utc)
        session.add(gym)
        await session.flush()
        return gym

    @staticmethod
    async def get_by_id(session: AsyncSession, gym_id: UUID) -> Gym | None:
        return await session.get(Gym, gym_id)

    @staticmethod
    async def set_pricing(
        session: AsyncSession,
        *,
        gym_id: UUID,
        payout_percentage: Decimal,
        base_price: Decimal,
        now_utc: datetime,
        active: bool = True,
    ) -> GymPricing:
        pricing = GymPricing(
            gym_id=gym_id,
            payout_percentage=payout_percentage,
            base_price=base_price,
            active=active,
            created_at=now_utc,
        )
        session.add(pricing)
        await session.flush()
        return pricing

    @staticmethod
    async def deactivate_pricing(session: AsyncSession, *, gym_id: UUID) -> int:
        stmt = (
            update(GymPricing)
            .where(GymPricing.gym_id == gym_id, GymPricing.active.is_(True))
            .values(active=False)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def list_pricing_with_gyms(session: AsyncSession) -> list[tuple[GymPricing, Gym]]:
        stmt = (
            select(GymPricing, Gym)
            .join(Gym, Gym.id == GymPricing.gym_id)
            .order_by(GymPricing.created_at.desc(), GymPricing.id.desc())
        )
        result = await session.execute(stmt)
        return [(pricing, gym) for pricing, gym in result.all()]

    @staticmethod
    async def map_active_pricing(
        session: AsyncSession,
        gym_ids: Sequence[UUID],
    ) -> dict[UUID, GymPricing]:
        ids = tuple(set(gym_ids))
        if not ids:
            return {}
        stmt = (
            select(GymPricing)
            .where(GymPricing.gym_id.in_(ids), GymPricing.active.is_(True))
            .order_by(GymPricing.created_at.asc(), GymPricing.id.asc())
        )
        result = await session.execute(stmt)
        # latest active row per gym wins
        return {pricing.gym_id: pricing for pricing in result.scalars().all()}
