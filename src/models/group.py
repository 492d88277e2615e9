# src/models/group.py
# -----------------------------------------------------------------------------
# МОДЕЛЬ: Group (SQLAlchemy)
# -----------------------------------------------------------------------------
# Идентификатор группы — строка (как в публичных ссылках на группу), чтобы
# восстановление из бэкапа могло сохранить его дословно.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Index,
)
from sqlalchemy.orm import relationship

from ..db import Base


class Group(Base):
    __tablename__ = "groups"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)

    information = Column(
        String,
        nullable=True,
        comment="Свободный текст о группе",
    )

    currency = Column(
        String(16),
        nullable=False,
        default="$",
        comment="Символ валюты для отображения, напр. '$'",
    )

    currency_code = Column(
        String(3),
        nullable=True,
        comment="Код валюты ISO-4217 (напр., 'USD'), если задан",
    )

    created_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        comment="Когда группа создана (UTC)",
    )

    # Владение: всё ниже удаляется вместе с группой
    participants = relationship(
        "Participant",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Participant.name",
    )
    expenses = relationship(
        "Expense",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    activities = relationship(
        "Activity",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_groups_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Group id={self.id} name={self.name!r}>"
