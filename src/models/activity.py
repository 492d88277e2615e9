import enum
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship

from src.db import Base


class ActivityType(enum.Enum):
    UPDATE_GROUP = "UPDATE_GROUP"
    CREATE_EXPENSE = "CREATE_EXPENSE"
    UPDATE_EXPENSE = "UPDATE_EXPENSE"
    DELETE_EXPENSE = "DELETE_EXPENSE"


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(64), primary_key=True, index=True)

    group_id = Column(String(64), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)

    time = Column(DateTime, nullable=False, default=datetime.utcnow)

    activity_type = Column(Enum(ActivityType, name="activity_type"), nullable=False)

    # кто совершил действие (может быть NULL для импорта)
    participant_id = Column(String(64), nullable=True)

    # без FK: запись журнала переживает удаление расхода
    expense_id = Column(String(64), nullable=True)

    # произвольная строка; для маркера импорта начинается с JSON_IMPORT_START:
    data = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_activities_group_time", "group_id", "time"),
    )

    group = relationship("Group", back_populates="activities")

    def __repr__(self) -> str:
        return f"<Activity id={self.id} type={self.activity_type} group={self.group_id} time={self.time}>"
