from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.payout_snapshots import PayoutSnapshot


class PayoutSnapshotsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, snapshot: PayoutSnapshot) -> PayoutSnapshot:
        session.add(snapshot)
        await session.flush()
        return snapshot

    @staticmethod
    async def list_recent(
        session: AsyncSession,
        *,
        limit: int,
        offset: int = 0,
    ) -> list[PayoutSnapshot]:
        stmt = (
            select(PayoutSnapshot)
            .order_by(PayoutSnapshot.period_end.desc(), PayoutSnapshot.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count(session: AsyncSession) -> int:
        result = await session.execute(select(func.count(PayoutSnapshot.id)))
        return int(result.scalar_one())
