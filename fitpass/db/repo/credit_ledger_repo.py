from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.credit_ledger import CreditLedgerEntry


def _not_expired(as_of: date):
    return or_(CreditLedgerEntry.expires_at.is_(None), CreditLedgerEntry.expires_at >= as_of)


class CreditLedgerRepo:
    @staticmethod
    async def sum_active(session: AsyncSession, *, user_id: UUID, as_of: date) -> int:
        stmt = select(func.coalesce(func.sum(CreditLedgerEntry.delta), 0)).where(
            CreditLedgerEntry.user_id == user_id,
            _not_expired(as_of),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def list_active(
        session: AsyncSession,
        *,
        user_id: UUID,
        as_of: date,
    ) -> list[CreditLedgerEntry]:
        stmt = (
            select(CreditLedgerEntry)
            .where(
                CreditLedgerEntry.user_id == user_id,
                _not_expired(as_of),
            )
            .order_by(
                CreditLedgerEntry.expires_at.asc().nulls_last(),
                CreditLedgerEntry.created_at.asc(),
                CreditLedgerEntry.id.asc(),
            )
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_recent(
        session: AsyncSession,
        *,
        user_id: UUID,
        limit: int,
    ) -> list[CreditLedgerEntry]:
        stmt = (
            select(CreditLedgerEntry)
            .where(CreditLedgerEntry.user_id == user_id)
            .order_by(CreditLedgerEntry.created_at.desc(), CreditLedgerEntry.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def exists_with_source(session: AsyncSession, *, user_id: UUID, source: str) -> bool:
        stmt = (
            select(CreditLedgerEntry.id)
            .where(
                CreditLedgerEntry.user_id == user_id,
                CreditLedgerEntry.source == source,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def exists_with_source_since(
        session: AsyncSession,
        *,
        user_id: UUID,
        source: str,
        since_utc: datetime,
    ) -> bool:
        stmt = (
            select(CreditLedgerEntry.id)
            .where(
                CreditLedgerEntry.user_id == user_id,
                CreditLedgerEntry.source == source,
                CreditLedgerEntry.created_at >= since_utc,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_user_ids_with_source_since(
        session: AsyncSession,
        *,
        source: str,
        since_utc: datetime,
    ) -> set[UUID]:
        stmt = (
            select(CreditLedgerEntry.user_id)
            .where(
                CreditLedgerEntry.source == source,
                CreditLedgerEntry.created_at >= since_utc,
            )
            .distinct()
        )
        result = await session.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, entry: CreditLedgerEntry) -> CreditLedgerEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def create_many(
        session: AsyncSession,
        *,
        entries: Sequence[CreditLedgerEntry],
    ) -> list[CreditLedgerEntry]:
        session.add_all(list(entries))
        await session.flush()
        return list(entries)
