# src/services/imports.py
# Маркеры импорта и откат последнего импорта.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from src.models.activity import Activity
from src.models.expense import Expense
from src.models.expense_document import ExpenseDocument
from src.models.expense_paid_for import ExpensePaidFor
from src.models.recurring_expense_link import RecurringExpenseLink
from src.services.activities import IMPORT_MARKER_PREFIX
from src.services.errors import ImportPreconditionError
from src.services.restore import apply_import_timeout

log = logging.getLogger(__name__)


@dataclass
class UndoResult:
    marker_id: str
    expenses_deleted: int
    activities_deleted: int


def find_last_import_marker(db: Session, group_id: str) -> Optional[Activity]:
    return db.scalar(
        select(Activity)
        .where(
            Activity.group_id == group_id,
            Activity.data.startswith(IMPORT_MARKER_PREFIX),
        )
        .order_by(Activity.time.desc())
        .limit(1)
    )


def has_import_marker(db: Session, group_id: str) -> bool:
    found = db.scalar(
        select(Activity.id)
        .where(
            Activity.group_id == group_id,
            Activity.data.startswith(IMPORT_MARKER_PREFIX),
        )
        .limit(1)
    )
    return found is not None


def undo_last_import(db: Session, group_id: str) -> UndoResult:
    """
    Удаляет всё, что появилось начиная с последнего маркера импорта:
      • расходы с created_at >= времени маркера (и их доли),
      • записи журнала с time >= времени маркера (включая сам маркер).
    Участников НЕ удаляем: на них могут ссылаться расходы вне отменяемого окна.
    Откатывается только самый свежий импорт; цепочку старых импортов не разворачиваем.
    Не делает commit.
    """
    marker = find_last_import_marker(db, group_id)
    if marker is None:
        raise ImportPreconditionError("No import found to undo")

    apply_import_timeout(db)
    since = marker.time
    marker_id = marker.id
    no_sync = {"synchronize_session": False}

    expense_ids = (
        select(Expense.id)
        .where(Expense.group_id == group_id, Expense.created_at >= since)
    )
    db.execute(delete(ExpensePaidFor).where(ExpensePaidFor.expense_id.in_(expense_ids)).execution_options(**no_sync))
    db.execute(delete(ExpenseDocument).where(ExpenseDocument.expense_id.in_(expense_ids)).execution_options(**no_sync))
    db.execute(
        delete(RecurringExpenseLink)
        .where(RecurringExpenseLink.current_frame_expense_id.in_(expense_ids))
        .execution_options(**no_sync)
    )
    expenses_deleted = db.execute(
        delete(Expense)
        .where(Expense.group_id == group_id, Expense.created_at >= since)
        .execution_options(**no_sync)
    ).rowcount
    activities_deleted = db.execute(
        delete(Activity)
        .where(Activity.group_id == group_id, Activity.time >= since)
        .execution_options(**no_sync)
    ).rowcount
    db.expunge_all()

    log.info(
        "undo import: group=%s marker=%s expenses=%d activities=%d",
        group_id, marker_id, expenses_deleted, activities_deleted,
    )
    return UndoResult(marker_id=marker_id, expenses_deleted=expenses_deleted, activities_deleted=activities_deleted)
