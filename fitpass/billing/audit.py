from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.credit_audit_log import CreditAuditLog
from fitpass.db.repo.credit_audit_repo import CreditAuditRepo

logger = structlog.get_logger(__name__)


async def record_credit_audit(
    session: AsyncSession,
    *,
    user_id: UUID,
    action: str,
    credits_before: int | None,
    credits_after: int | None,
    now_utc: datetime,
    metadata: dict[str, object] | None = None,
) -> bool:
    """Append an audit row inside a savepoint; failures are logged and never escalate."""
    credits_changed = None
    if credits_before is not None and credits_after is not None:
        credits_changed = credits_after - credits_before

    try:
        async with session.begin_nested():
            await CreditAuditRepo.create(
                session,
                entry=CreditAuditLog(
                    user_id=user_id,
                    action=action,
                    credits_before=credits_before,
                    credits_after=credits_after,
                    credits_changed=credits_changed,
                    metadata_=dict(metadata or {}),
                    created_at=now_utc,
                ),
            )
    except SQLAlchemyError:
        logger.warning(
            "credit_audit_write_failed",
            user_id=str(user_id),
            action=action,
            exc_info=True,
        )
        return False
    return True
