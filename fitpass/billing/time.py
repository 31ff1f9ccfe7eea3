from __future__ import annotations

from datetime import date, datetime, timezone


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_today(now_utc: datetime) -> date:
    return as_utc(now_utc).date()


def month_start_utc(now_utc: datetime) -> datetime:
    current = as_utc(now_utc)
    return current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
