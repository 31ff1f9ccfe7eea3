from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.billing.audit import record_credit_audit
from fitpass.billing.errors import AccountFrozenError, AccountNotFrozenError, ProfileNotFoundError
from fitpass.db.models.profiles import Profile
from fitpass.db.repo.profiles_repo import ProfilesRepo

logger = structlog.get_logger(__name__)


class AccountService:
    @staticmethod
    async def _set_frozen(
        session: AsyncSession,
        *,
        user_id: UUID,
        frozen: bool,
        now_utc: datetime,
    ) -> Profile:
        profile = await ProfilesRepo.get_by_id_for_update(session, user_id)
        if profile is None:
            raise ProfileNotFoundError
        if profile.frozen and frozen:
            raise AccountFrozenError
        if not profile.frozen and not frozen:
            raise AccountNotFrozenError

        profile.frozen = frozen
        profile.frozen_at = now_utc if frozen else None
        profile.updated_at = now_utc
        await session.flush()

        await record_credit_audit(
            session,
            user_id=user_id,
            action="account_freeze" if frozen else "account_unfreeze",
            credits_before=None,
            credits_after=None,
            now_utc=now_utc,
            metadata={"tier": profile.tier},
        )
        logger.info("account_frozen_changed", user_id=str(user_id), frozen=frozen)
        return profile

    @staticmethod
    async def freeze(session: AsyncSession, *, user_id: UUID, now_utc: datetime) -> Profile:
        return await AccountService._set_frozen(session, user_id=user_id, frozen=True, now_utc=now_utc)

    @staticmethod
    async def unfreeze(session: AsyncSession, *, user_id: UUID, now_utc: datetime) -> Profile:
        return await AccountService._set_frozen(session, user_id=user_id, frozen=False, now_utc=now_utc)
