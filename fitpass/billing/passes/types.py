from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ActiveTouristPass:
    id: UUID
    remaining: int
    ends_at: datetime


@dataclass(slots=True)
class TouristPassConsumeResult:
    pass_id: UUID
    classes_used: int
    classes_total: int

    @property
    def remaining(self) -> int:
        return self.classes_total - self.classes_used


@dataclass(slots=True)
class TouristPassStatus:
    active: ActiveTouristPass | None
    latest_pass_code: str | None
    latest_ends_at: datetime | None
