from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, Uuid, event
from sqlalchemy.orm import Mapped, Session, mapped_column

from fitpass.db.models.base import Base, BigIntPK


class CreditLedgerEntry(Base):
    __tablename__ = "credit_ledger"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="delta_non_zero"),
        Index("idx_credit_ledger_user_created", "user_id", "created_at"),
        Index("idx_credit_ledger_user_expires", "user_id", "expires_at"),
        Index("idx_credit_ledger_source", "source"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(128), nullable=False)
    expires_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


@event.listens_for(Session, "before_flush")
def _reject_ledger_mutations(session: Session, _flush_context, _instances) -> None:
    for instance in session.deleted:
        if isinstance(instance, CreditLedgerEntry):
            raise ValueError("credit_ledger is append-only: delete rejected")
    for instance in session.dirty:
        if isinstance(instance, CreditLedgerEntry) and session.is_modified(instance):
            raise ValueError("credit_ledger is append-only: update rejected")
