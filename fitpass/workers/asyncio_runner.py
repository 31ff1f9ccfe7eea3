from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from fitpass.db.session import dispose_engine

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def _run_job(awaitable: Awaitable[T], *, job_name: str) -> T:
    # asyncpg connections are bound to the loop that opened them
    await dispose_engine()
    started_at = time.monotonic()
    try:
        return await awaitable
    except Exception:
        logger.error("worker_job_failed", job=job_name, exc_info=True)
        raise
    finally:
        await dispose_engine()
        logger.info(
            "worker_job_done",
            job=job_name,
            duration_ms=int((time.monotonic() - started_at) * 1000),
        )


def run_async_job(awaitable: Awaitable[T], *, job_name: str = "async_job") -> T:
    return asyncio.run(_run_job(awaitable, job_name=job_name))
