# src/models/expense_paid_for.py
# -----------------------------------------------------------------------------
# МОДЕЛЬ: ExpensePaidFor — за кого заплачен расход и с каким весом (shares)
# -----------------------------------------------------------------------------

from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from src.db import Base


class ExpensePaidFor(Base):
    __tablename__ = "expense_paid_for"

    expense_id = Column(
        String(64),
        ForeignKey("expenses.id", ondelete="CASCADE"),
        primary_key=True,
        comment="ID расхода",
    )

    participant_id = Column(
        String(64),
        ForeignKey("participants.id", ondelete="CASCADE"),
        primary_key=True,
        comment="ID участника той же группы",
    )

    # Смысл веса зависит от split_mode расхода: доли, проценты*100 или сумма
    shares = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_paid_for_participant", "participant_id"),
    )

    expense = relationship("Expense", back_populates="paid_for")
    participant = relationship("Participant")
