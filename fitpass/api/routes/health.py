from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import select, text

from fitpass.core.config import get_settings
from fitpass.db.models.credit_ledger import CreditLedgerEntry
from fitpass.db.session import SessionLocal
from fitpass.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


def _ok_check(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": "ok"}
    if extra:
        payload.update(extra)
    return payload


def _failed_check(error: str) -> dict[str, str]:
    return {"status": "failed", "error": error}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
            # schema is migrated when the ledger table answers
            await session.execute(select(CreditLedgerEntry.id).limit(1))
        return _ok_check()
    except Exception:
        # connection errors can carry the DSN
        logger.warning("health_database_check_failed", exc_info=True)
        return _failed_check("database_unavailable")


async def _check_redis() -> dict[str, Any]:
    redis_client: Redis | None = None
    try:
        redis_client = Redis.from_url(get_settings().redis_url)
        pong = await redis_client.ping()
        if pong is not True:
            return _failed_check(f"unexpected redis ping response: {pong!r}")
        return _ok_check()
    except Exception:
        logger.warning("health_redis_check_failed", exc_info=True)
        return _failed_check("redis_unavailable")
    finally:
        if redis_client is not None:
            await redis_client.aclose()


def _check_celery_worker_sync() -> dict[str, Any]:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = (inspector.ping() if inspector is not None else None) or {}
        if not replies:
            return _failed_check("no celery workers responded to ping")
        return _ok_check({"workers": len(replies)})
    except Exception:
        logger.warning("health_celery_check_failed", exc_info=True)
        return _failed_check("celery_unavailable")


async def _check_celery_worker() -> dict[str, Any]:
    return await asyncio.to_thread(_check_celery_worker_sync)


def _response(checks: dict[str, dict[str, Any]], *, ok_label: str, failed_label: str) -> JSONResponse:
    is_ok = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_label if is_ok else failed_label, "checks": checks},
    )


@router.get("/health")
async def health() -> JSONResponse:
    database, redis, celery = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_celery_worker(),
    )
    return _response(
        {"database": database, "redis": redis, "celery": celery},
        ok_label="ok",
        failed_label="degraded",
    )


@router.get("/ready")
async def ready() -> JSONResponse:
    # the API can serve bookings without a running beat/worker
    database, redis = await asyncio.gather(_check_database(), _check_redis())
    return _response(
        {"database": database, "redis": redis},
        ok_label="ready",
        failed_label="not_ready",
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}
