from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, DateTime, Index, Integer, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fitpass.db.models.base import Base, BigIntPK, JSONType


class PayoutSnapshot(Base):
    __tablename__ = "payout_snapshots"
    __table_args__ = (Index("idx_payout_snapshots_period", "period_start", "period_end"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_gyms: Mapped[int] = mapped_column(Integer, nullable=False)
    total_bookings: Mapped[int] = mapped_column(Integer, nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_payouts: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    report: Mapped[dict[str, object]] = mapped_column(JSONType, nullable=False, default=dict)
    created_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
