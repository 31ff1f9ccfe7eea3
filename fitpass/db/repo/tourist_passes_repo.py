from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.tourist_passes import TouristPass


class TouristPassesRepo:
    @staticmethod
    async def get_latest_active(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
    ) -> TouristPass | None:
        stmt = (
            select(TouristPass)
            .where(
                TouristPass.user_id == user_id,
                TouristPass.starts_at <= now_utc,
                TouristPass.ends_at >= now_utc,
                TouristPass.classes_used < TouristPass.classes_total,
            )
            .order_by(TouristPass.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_latest(session: AsyncSession, *, user_id: UUID) -> TouristPass | None:
        stmt = (
            select(TouristPass)
            .where(TouristPass.user_id == user_id)
            .order_by(TouristPass.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, pass_id: UUID) -> TouristPass | None:
        stmt = select(TouristPass).where(TouristPass.id == pass_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_source_ref(session: AsyncSession, source_ref: str) -> TouristPass | None:
        stmt = select(TouristPass).where(TouristPass.source_ref == source_ref)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, tourist_pass: TouristPass) -> TouristPass:
        session.add(tourist_pass)
        await session.flush()
        return tourist_pass
