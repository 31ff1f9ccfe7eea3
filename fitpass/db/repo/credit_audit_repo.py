from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.credit_audit_log import CreditAuditLog


class CreditAuditRepo:
    @staticmethod
    async def create(session: AsyncSession, *, entry: CreditAuditLog) -> CreditAuditLog:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def get_latest_by_action(session: AsyncSession, *, action: str) -> CreditAuditLog | None:
        stmt = (
            select(CreditAuditLog)
            .where(CreditAuditLog.action == action)
            .order_by(CreditAuditLog.created_at.desc(), CreditAuditLog.id.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        user_id: UUID,
        limit: int = 50,
    ) -> list[CreditAuditLog]:
        stmt = (
            select(CreditAuditLog)
            .where(CreditAuditLog.user_id == user_id)
            .order_by(CreditAuditLog.created_at.desc(), CreditAuditLog.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
