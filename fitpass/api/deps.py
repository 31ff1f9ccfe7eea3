from __future__ import annotations

from uuid import UUID

from fastapi import Header, HTTPException


def current_user_id(x_user_id: str | None = Header(default=None)) -> UUID:
    if not x_user_id:
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"})
    try:
        return UUID(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"}) from exc
