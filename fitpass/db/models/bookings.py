from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from fitpass.db.models.base import Base, JSONType


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint(
            "status IN ('confirmed','cancelled','completed')",
            name="status",
        ),
        CheckConstraint(
            "cancellation_reason IS NULL OR cancellation_reason IN "
            "('early_cancellation','late_cancellation')",
            name="cancellation_reason",
        ),
        CheckConstraint("credits_used >= 0", name="credits_used_non_negative"),
        Index("idx_bookings_user_booked", "user_id", "booked_at"),
        Index("idx_bookings_class_status", "class_id", "status"),
        Index(
            "uq_bookings_confirmed_per_user_class",
            "user_id",
            "class_id",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    class_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("fitness_classes.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    attended: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tourist_pass_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("tourist_passes.id"),
        nullable=True,
    )
    # [{"amount": int, "expires_at": "YYYY-MM-DD" | null}, ...] as spent
    credit_allocations: Mapped[list[dict[str, object]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    booked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(32), nullable=True)
    refund_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    penalty_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
