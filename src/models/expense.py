# src/models/expense.py
# -----------------------------------------------------------------------------
# МОДЕЛЬ: Expense (SQLAlchemy)
# -----------------------------------------------------------------------------

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    Numeric,
    DateTime,
    Boolean,
    Enum,
    Index,
)
from sqlalchemy.orm import relationship

from src.db import Base


class SplitMode(enum.Enum):
    EVENLY = "EVENLY"
    BY_SHARES = "BY_SHARES"
    BY_PERCENTAGE = "BY_PERCENTAGE"
    BY_AMOUNT = "BY_AMOUNT"


class RecurrenceRule(enum.Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String(64), primary_key=True, index=True)

    group_id = Column(
        String(64),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        comment="ID группы, к которой относится расход",
    )

    expense_date = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        comment="Дата расхода",
    )

    created_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        comment="Когда создана запись",
    )

    title = Column(String, nullable=False)

    category_id = Column(
        Integer,
        ForeignKey("categories.id"),
        nullable=True,
        comment="Категория (NULL — без категории)",
    )

    amount = Column(
        Integer,
        nullable=False,
        comment="Сумма в минорных единицах валюты группы (центы)",
    )

    # --- Мультивалютные расходы ---------------------------------------------
    original_amount = Column(Integer, nullable=True, comment="Сумма в исходной валюте (минорные единицы)")
    original_currency = Column(String(3), nullable=True, comment="Исходная валюта ISO-4217")
    conversion_rate = Column(Numeric(18, 6), nullable=True, comment="Курс пересчёта в валюту группы")
    # -------------------------------------------------------------------------

    paid_by_id = Column(
        String(64),
        ForeignKey("participants.id"),
        nullable=False,
        comment="Кто оплатил",
    )

    split_mode = Column(
        Enum(SplitMode, name="split_mode"),
        nullable=False,
        default=SplitMode.EVENLY,
        comment="Способ деления: EVENLY|BY_SHARES|BY_PERCENTAGE|BY_AMOUNT",
    )

    is_reimbursement = Column(Boolean, nullable=False, default=False)

    notes = Column(String, nullable=True)

    recurrence_rule = Column(
        Enum(RecurrenceRule, name="recurrence_rule"),
        nullable=False,
        default=RecurrenceRule.NONE,
        comment="Повтор: NONE|DAILY|WEEKLY|MONTHLY",
    )

    __table_args__ = (
        Index("ix_expenses_group_date", "group_id", "expense_date"),
        Index("ix_expenses_group_created", "group_id", "created_at"),
    )

    group = relationship("Group", back_populates="expenses")
    payer = relationship("Participant", foreign_keys=[paid_by_id])
    category = relationship("Category", lazy="joined")

    paid_for = relationship(
        "ExpensePaidFor",
        back_populates="expense",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    documents = relationship(
        "ExpenseDocument",
        back_populates="expense",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    recurring_expense_link = relationship(
        "RecurringExpenseLink",
        back_populates="current_frame_expense",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Expense id={self.id} title={self.title!r} amount={self.amount}>"
