# src/models/category.py
# Справочник категорий расходов: пара (grouping, name), напр. ("Food and Drink", "Dining Out").
# Категории общие для всех групп; уникальность пары защищает от дублей,
# когда два импорта одновременно создают «одну и ту же» категорию.

from __future__ import annotations

from sqlalchemy import Column, Integer, String, UniqueConstraint

from ..db import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    grouping = Column(String, nullable=False, comment="Группа категорий, напр. 'Food and Drink'")
    name = Column(String, nullable=False, comment="Название категории внутри группы")

    __table_args__ = (
        UniqueConstraint("grouping", "name", name="uq_categories_grouping_name"),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} {self.grouping}/{self.name}>"
