# src/services/activities.py
from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from src.models.activity import Activity, ActivityType
from src.utils.dates import iso_z, utc_now

# Префикс строки data у маркера начала импорта; по нему ищем, что откатывать
IMPORT_MARKER_PREFIX = "JSON_IMPORT_START:"


def new_id() -> str:
    return str(uuid.uuid4())


def log_activity(
    db: Session,
    *,
    group_id: str,
    activity_type: ActivityType,
    time: Optional[datetime] = None,
    participant_id: Optional[str] = None,
    expense_id: Optional[str] = None,
    data: Optional[str] = None,
    activity_id: Optional[str] = None,
) -> Activity:
    """
    Единая точка записи в журнал группы. Вызывается в той же транзакции, что и бизнес-операция.
    Не делает commit.
    """
    act = Activity(
        id=activity_id or new_id(),
        group_id=group_id,
        activity_type=activity_type,
        time=time or utc_now(),
        participant_id=participant_id,
        expense_id=expense_id,
        data=data,
    )
    db.add(act)
    return act


def import_marker_data(mode: str, expense_count: int) -> str:
    return f"{IMPORT_MARKER_PREFIX}{mode}:{expense_count} expenses"


def log_import_marker(db: Session, *, group_id: str, mode: str, expense_count: int, time: datetime) -> Activity:
    """Маркер «здесь начался импорт» — от него считает undo последнего импорта."""
    return log_activity(
        db,
        group_id=group_id,
        activity_type=ActivityType.UPDATE_GROUP,
        time=time,
        data=import_marker_data(mode, expense_count),
    )


def log_imported_expense(db: Session, *, group_id: str, expense_id: str, title: str, time: datetime) -> Activity:
    payload = {"title": title, "importDate": iso_z(time)}
    return log_activity(
        db,
        group_id=group_id,
        activity_type=ActivityType.CREATE_EXPENSE,
        time=time,
        expense_id=expense_id,
        data=json.dumps(payload, ensure_ascii=False),
    )
