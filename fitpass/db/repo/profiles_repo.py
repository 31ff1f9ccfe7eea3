from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.profiles import Profile


class ProfilesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: UUID) -> Profile | None:
        return await session.get(Profile, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: UUID) -> Profile | None:
        stmt = select(Profile).where(Profile.id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(session: AsyncSession, email: str) -> Profile | None:
        stmt = select(Profile).where(Profile.email == email.strip().lower())
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
        email: str | None = None,
        tier: str | None = None,
        user_type: str = "member",
    ) -> Profile:
        profile = Profile(
            id=user_id,
            email=email.strip().lower() if email else None,
            tier=tier,
            frozen=False,
            frozen_at=None,
            user_type=user_type,
            created_at=now_utc,
            updated_at=now_utc,
        )
        session.add(profile)
        await session.flush()
        return profile

    @staticmethod
    async def list_grant_eligible_ids(
        session: AsyncSession,
        *,
        tiers: Sequence[str],
    ) -> list[UUID]:
        stmt = (
            select(Profile.id)
            .where(
                Profile.tier.in_(tuple(tiers)),
                Profile.frozen.is_(False),
            )
            .order_by(Profile.created_at.asc(), Profile.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
