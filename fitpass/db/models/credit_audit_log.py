from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fitpass.db.models.base import Base, BigIntPK, JSONType


class CreditAuditLog(Base):
    __tablename__ = "credit_audit_log"
    __table_args__ = (
        Index("idx_credit_audit_user_created", "user_id", "created_at"),
        Index("idx_credit_audit_action_created", "action", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    credits_before: Mapped[int | None] = mapped_column(Integer, nullable=True)
    credits_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    credits_changed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    metadata_: Mapped[dict[str, object]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
