from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.billing.errors import TouristPassExhaustedError, TouristPassNotFoundError
from fitpass.billing.passes.types import (
    ActiveTouristPass,
    TouristPassConsumeResult,
    TouristPassStatus,
)
from fitpass.billing.time import as_utc
from fitpass.db.models.tourist_passes import TouristPass
from fitpass.db.repo.tourist_passes_repo import TouristPassesRepo

logger = structlog.get_logger(__name__)


class TouristPassService:
    @staticmethod
    async def has_active_tourist_pass(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
    ) -> ActiveTouristPass | None:
        tourist_pass = await TouristPassesRepo.get_latest_active(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        if tourist_pass is None:
            return None
        return ActiveTouristPass(
            id=tourist_pass.id,
            remaining=tourist_pass.classes_total - tourist_pass.classes_used,
            ends_at=as_utc(tourist_pass.ends_at),
        )

    @staticmethod
    async def consume_tourist_pass(
        session: AsyncSession,
        *,
        pass_id: UUID,
    ) -> TouristPassConsumeResult:
        tourist_pass = await TouristPassesRepo.get_by_id_for_update(session, pass_id)
        if tourist_pass is None:
            raise TouristPassNotFoundError
        if tourist_pass.classes_used >= tourist_pass.classes_total:
            raise TouristPassExhaustedError(pass_id)

        tourist_pass.classes_used += 1
        await session.flush()
        logger.info(
            "tourist_pass_consumed",
            pass_id=str(pass_id),
            classes_used=tourist_pass.classes_used,
            classes_total=tourist_pass.classes_total,
        )
        return TouristPassConsumeResult(
            pass_id=tourist_pass.id,
            classes_used=tourist_pass.classes_used,
            classes_total=tourist_pass.classes_total,
        )

    @staticmethod
    async def add_tourist_pass(
        session: AsyncSession,
        *,
        user_id: UUID,
        duration_days: int,
        total_classes: int,
        source_ref: str | None,
        now_utc: datetime,
        pass_code: str | None = None,
    ) -> TouristPass:
        tourist_pass = await TouristPassesRepo.create(
            session,
            tourist_pass=TouristPass(
                user_id=user_id,
                pass_code=pass_code,
                starts_at=now_utc,
                ends_at=now_utc + timedelta(days=duration_days),
                classes_total=total_classes,
                classes_used=0,
                source_ref=source_ref,
                created_at=now_utc,
            ),
        )
        logger.info(
            "tourist_pass_added",
            user_id=str(user_id),
            pass_id=str(tourist_pass.id),
            pass_code=pass_code,
            classes_total=total_classes,
        )
        return tourist_pass

    @staticmethod
    async def get_status(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
    ) -> TouristPassStatus:
        active = await TouristPassService.has_active_tourist_pass(
            session, user_id=user_id, now_utc=now_utc
        )
        latest = await TouristPassesRepo.get_latest(session, user_id=user_id)
        return TouristPassStatus(
            active=active,
            latest_pass_code=latest.pass_code if latest is not None else None,
            latest_ends_at=as_utc(latest.ends_at) if latest is not None else None,
        )
