from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from fitpass.db.models.base import Base


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("tier IS NULL OR tier IN ('t1','t2','t3')", name="tier"),
        CheckConstraint("user_type IN ('member','studio_owner')", name="user_type"),
        Index("idx_profiles_tier_frozen", "tier", "frozen"),
        Index("uq_profiles_email", "email", unique=True),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    tier: Mapped[str | None] = mapped_column(String(8), nullable=True)
    frozen: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    frozen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_customer_ref: Mapped[str | None] = mapped_column(String(128), nullable=True)
    user_type: Mapped[str] = mapped_column(String(16), nullable=False, default="member")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
