# src/models/recurring_expense_link.py
# Звено цепочки повторяющихся расходов: указывает на текущий расход «кадра»
# и на дату, когда должен появиться следующий.

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from ..db import Base


class RecurringExpenseLink(Base):
    __tablename__ = "recurring_expense_links"

    id = Column(String(64), primary_key=True, index=True)
    group_id = Column(String(64), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)

    current_frame_expense_id = Column(
        String(64),
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
    )

    next_expense_created_at = Column(DateTime, nullable=True, comment="Когда следующий расход был создан (NULL — ещё нет)")
    next_expense_date = Column(DateTime, nullable=False, comment="Дата следующего расхода цепочки")

    __table_args__ = (
        UniqueConstraint("current_frame_expense_id", name="uq_recurring_link_current_frame"),
        Index("ix_recurring_links_group_next", "group_id", "next_expense_created_at", "next_expense_date"),
    )

    current_frame_expense = relationship("Expense", back_populates="recurring_expense_link")
