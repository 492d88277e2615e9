# src/models/participant.py
# Участник группы. Ссылки на него из расходов (плательщик / доли) проверяются
# движком восстановления до записи, а не ограничениями БД.

from sqlalchemy import Column, String, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..db import Base


class Participant(Base):
    __tablename__ = "participants"

    id = Column(String(64), primary_key=True, index=True)
    group_id = Column(String(64), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)

    __table_args__ = (
        Index("ix_participants_group_id", "group_id"),
    )

    group = relationship("Group", back_populates="participants")
