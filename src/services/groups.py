# src/services/groups.py
# ОБЩИЕ ОПЕРАЦИИ С ГРУППОЙ: подсчёт документов, удаление группы/расхода вместе с файлами.

from __future__ import annotations

import json
import logging
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from src.models.activity import ActivityType
from src.models.expense import Expense
from src.models.expense_document import ExpenseDocument
from src.models.group import Group
from src.services.activities import log_activity
from src.services.blob_store import BlobStore, delete_documents_by_urls
from src.services.errors import NotFoundError
from src.services.restore import wipe_group_data

log = logging.getLogger(__name__)


def get_group_or_404(db: Session, group_id: str) -> Group:
    group = db.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    return group


def _group_document_urls(db: Session, group_id: str) -> List[str]:
    return list(db.scalars(
        select(ExpenseDocument.url)
        .join(Expense, Expense.id == ExpenseDocument.expense_id)
        .where(Expense.group_id == group_id)
    ))


def get_group_document_count(db: Session, group_id: str) -> int:
    get_group_or_404(db, group_id)
    return int(db.scalar(
        select(func.count(ExpenseDocument.id))
        .join(Expense, Expense.id == ExpenseDocument.expense_id)
        .where(Expense.group_id == group_id)
    ) or 0)


def delete_group_with_documents(db: Session, group_id: str, delete_documents: bool, store: BlobStore) -> int:
    """
    Удаляет группу вместе с участниками, расходами и журналом.
    Файлы документов удаляются из хранилища только по явному флагу и до удаления записей,
    пока их URL ещё можно прочитать. Не делает commit. Возвращает число удалённых файлов.
    """
    get_group_or_404(db, group_id)
    files_deleted = 0
    if delete_documents:
        files_deleted = delete_documents_by_urls(store, _group_document_urls(db, group_id))

    # явные DELETE по таблицам, как при rollback
    wipe_group_data(db, group_id)
    db.execute(delete(Group).where(Group.id == group_id).execution_options(synchronize_session=False))
    db.expunge_all()
    log.info("group deleted: id=%s files_deleted=%d", group_id, files_deleted)
    return files_deleted


def delete_expense(
    db: Session,
    group_id: str,
    expense_id: str,
    store: BlobStore,
    participant_id: Optional[str] = None,
) -> None:
    """Удаляет расход, его файлы документов и пишет DELETE_EXPENSE в журнал. Не делает commit."""
    expense = db.scalar(select(Expense).where(Expense.id == expense_id, Expense.group_id == group_id))
    if expense is None:
        raise NotFoundError("Expense not found")

    delete_documents_by_urls(store, [d.url for d in expense.documents])

    log_activity(
        db,
        group_id=group_id,
        activity_type=ActivityType.DELETE_EXPENSE,
        participant_id=participant_id,
        expense_id=expense_id,
        data=json.dumps({"title": expense.title}, ensure_ascii=False),
    )
    db.delete(expense)
    db.flush()
