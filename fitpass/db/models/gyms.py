from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from fitpass.db.models.base import Base, BigIntPK


class Gym(Base):
    __tablename__ = "gyms"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_id: Mapped[UUID | None] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class GymPricing(Base):
    __tablename__ = "gym_pricing"
    __table_args__ = (
        CheckConstraint(
            "payout_percentage > 0 AND payout_percentage <= 1",
            name="payout_percentage_range",
        ),
        CheckConstraint("base_price >= 0", name="base_price_non_negative"),
        Index("idx_gym_pricing_gym_active", "gym_id", "active"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    gym_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("gyms.id"), nullable=False)
    payout_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
