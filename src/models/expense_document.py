# src/models/expense_document.py
# Вложения расхода (фото чеков). Сам файл живёт во внешнем хранилище,
# здесь только ссылка и размеры картинки.

from sqlalchemy import Column, Integer, String, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..db import Base


class ExpenseDocument(Base):
    __tablename__ = "expense_documents"

    id = Column(String(64), primary_key=True, index=True)
    url = Column(String(1024), nullable=False, comment="Публичный URL файла")
    width = Column(Integer, nullable=False, default=0)
    height = Column(Integer, nullable=False, default=0)

    expense_id = Column(String(64), ForeignKey("expenses.id", ondelete="CASCADE"), nullable=True)

    __table_args__ = (
        Index("ix_expense_documents_expense_id", "expense_id"),
    )

    expense = relationship("Expense", back_populates="documents")
