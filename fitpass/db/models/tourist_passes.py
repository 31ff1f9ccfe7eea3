from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fitpass.db.models.base import Base


class TouristPass(Base):
    __tablename__ = "tourist_passes"
    __table_args__ = (
        CheckConstraint("classes_total > 0", name="classes_total_positive"),
        CheckConstraint(
            "classes_used >= 0 AND classes_used <= classes_total",
            name="classes_used_range",
        ),
        CheckConstraint("ends_at > starts_at", name="window"),
        Index("idx_tourist_passes_user_created", "user_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    pass_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    classes_total: Mapped[int] = mapped_column(Integer, nullable=False)
    classes_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source_ref: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
