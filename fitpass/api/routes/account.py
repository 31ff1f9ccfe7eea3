from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends

from fitpass.api.deps import current_user_id
from fitpass.api.errors import billing_http_error
from fitpass.api.routes.billing_models import AccountFreezeResponse
from fitpass.billing.accounts.service import AccountService
from fitpass.billing.errors import BillingError
from fitpass.db.session import SessionLocal

router = APIRouter(prefix="/account", tags=["account"])


@router.post("/freeze", response_model=AccountFreezeResponse)
async def freeze_account(user_id: UUID = Depends(current_user_id)) -> AccountFreezeResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            profile = await AccountService.freeze(session, user_id=user_id, now_utc=now_utc)
        except BillingError as exc:
            raise billing_http_error(exc) from exc
        return AccountFreezeResponse(frozen=profile.frozen, frozen_at=profile.frozen_at)


@router.post("/unfreeze", response_model=AccountFreezeResponse)
async def unfreeze_account(user_id: UUID = Depends(current_user_id)) -> AccountFreezeResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            profile = await AccountService.unfreeze(session, user_id=user_id, now_utc=now_utc)
        except BillingError as exc:
            raise billing_http_error(exc) from exc
        return AccountFreezeResponse(frozen=profile.frozen, frozen_at=profile.frozen_at)
