# src/services/versions.py
# -----------------------------------------------------------------------------
# СРАВНЕНИЕ ВЕРСИЙ: новее ли загруженный снимок, чем живая группа.
# -----------------------------------------------------------------------------
# «Последнее изменение» живой группы — максимум по (последний расход, последняя
# активность), при пустых списках — время создания группы. Сравнение строгое:
# равенство меток → SAME, других тай-брейков нет. Рассинхрон часов между тем,
# кто делал снимок, и сервером не компенсируем.
# -----------------------------------------------------------------------------

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.activity import Activity
from src.models.expense import Expense
from src.models.group import Group
from src.models.participant import Participant
from src.schemas.snapshot import BackupData, JSONImportData
from src.services.errors import ImportPreconditionError
from src.utils.dates import EPOCH, iso_z


class VersionComparisonResult(str, enum.Enum):
    NEWER = "NEWER"          # снимок новее группы
    OLDER = "OLDER"          # снимок старше группы
    SAME = "SAME"            # метки совпали
    NOT_FOUND = "NOT_FOUND"  # группы нет


@dataclass
class LiveGroupSummary:
    """Срез живой группы, достаточный для сравнения и диффа."""
    created_at: datetime
    participant_ids: List[str] = field(default_factory=list)
    expense_ids: List[str] = field(default_factory=list)
    expense_created_at: List[datetime] = field(default_factory=list)
    expense_dates: List[datetime] = field(default_factory=list)
    expense_titles: List[str] = field(default_factory=list)
    activity_times: List[datetime] = field(default_factory=list)


@dataclass
class VersionComparison:
    result: VersionComparisonResult
    snapshot_at: datetime
    live_updated_at: Optional[datetime] = None


def latest(values: Iterable[datetime], fallback: datetime) -> datetime:
    return max(values, default=fallback)


def live_updated_at(expense_times: Iterable[datetime], activity_times: Iterable[datetime], created_at: datetime) -> datetime:
    return max(latest(expense_times, created_at), latest(activity_times, created_at))


def compare_versions(snapshot_at: datetime, live: Optional[LiveGroupSummary], *, expense_times: Optional[List[datetime]] = None) -> VersionComparison:
    """
    Классифицирует снимок относительно живой группы.
    expense_times — какие метки расходов считать (по умолчанию created_at).
    """
    if live is None:
        return VersionComparison(result=VersionComparisonResult.NOT_FOUND, snapshot_at=snapshot_at)

    times = live.expense_created_at if expense_times is None else expense_times
    updated_at = live_updated_at(times, live.activity_times, live.created_at)

    if snapshot_at > updated_at:
        result = VersionComparisonResult.NEWER
    elif snapshot_at < updated_at:
        result = VersionComparisonResult.OLDER
    else:
        result = VersionComparisonResult.SAME
    return VersionComparison(result=result, snapshot_at=snapshot_at, live_updated_at=updated_at)


# ===== Форматы снимков ========================================================

def backup_snapshot_at(data: BackupData) -> datetime:
    return data.exported_at


def json_snapshot_at(data: JSONImportData) -> datetime:
    # В лёгком формате нет метки экспорта — берём самую позднюю дату расхода
    return latest((e.expense_date for e in data.expenses), EPOCH)


def compare_backup(data: BackupData, live: Optional[LiveGroupSummary]) -> VersionComparison:
    return compare_versions(backup_snapshot_at(data), live)


def compare_json(data: JSONImportData, live: Optional[LiveGroupSummary]) -> VersionComparison:
    return compare_versions(
        json_snapshot_at(data),
        live,
        expense_times=live.expense_dates if live is not None else None,
    )


def comparison_payload(cmp: VersionComparison, *, snapshot_key: str) -> dict:
    return {
        "result": cmp.result.value,
        "existingGroupUpdatedAt": iso_z(cmp.live_updated_at),
        snapshot_key: iso_z(cmp.snapshot_at),
    }


# ===== Загрузка живой группы ==================================================

def load_live_summary(db: Session, group_id: str) -> Optional[LiveGroupSummary]:
    group = db.get(Group, group_id)
    if group is None:
        return None

    participant_ids = list(db.scalars(select(Participant.id).where(Participant.group_id == group_id)))
    expense_rows = db.execute(
        select(Expense.id, Expense.created_at, Expense.expense_date, Expense.title)
        .where(Expense.group_id == group_id)
        .order_by(Expense.expense_date.asc(), Expense.created_at.asc())
    ).all()
    activity_times = list(db.scalars(select(Activity.time).where(Activity.group_id == group_id)))

    return LiveGroupSummary(
        created_at=group.created_at,
        participant_ids=participant_ids,
        expense_ids=[r.id for r in expense_rows],
        expense_created_at=[r.created_at for r in expense_rows],
        expense_dates=[r.expense_date for r in expense_rows],
        expense_titles=[r.title for r in expense_rows],
        activity_times=activity_times,
    )


# ===== Выбор режима восстановления ===========================================

def derive_restore_mode(cmp: VersionComparison, action: str, *, label: str = "Backup") -> str:
    """
    NOT_FOUND → create; явный rollback → rollback; NEWER → update.
    Иначе (OLDER/SAME без rollback) — отказ: пользователь должен выбрать rollback сам.
    """
    if cmp.result == VersionComparisonResult.NOT_FOUND:
        return "create"
    if action == "rollback":
        return "rollback"
    if cmp.result == VersionComparisonResult.NEWER:
        return "update"
    raise ImportPreconditionError(
        f"{label} is not newer than existing group. Use rollback to restore older version."
    )
