# src/services/export.py
# -----------------------------------------------------------------------------
# ЭКСПОРТ ГРУППЫ
# -----------------------------------------------------------------------------
#  • build_backup        — полный снимок (версия, метка экспорта, группа, участники,
#                          расходы с документами и цепочками повторов, журнал).
#  • build_backup_archive — zip: backup.json + metadata.json.
#  • build_json_export   — лёгкий JSON (без id расходов, журнала и вложений);
#                          именно его читает /groups/json/import.
# -----------------------------------------------------------------------------

from __future__ import annotations

import io
import json
import zipfile
from datetime import date, datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from src.models.activity import Activity
from src.models.expense import Expense
from src.models.group import Group
from src.utils.dates import iso_z, utc_now

BACKUP_VERSION = "1.0.0"


def _load_group(db: Session, group_id: str) -> Optional[Group]:
    return db.scalar(
        select(Group)
        .where(Group.id == group_id)
        .options(selectinload(Group.participants))
    )


def _group_expenses(db: Session, group_id: str):
    return list(db.scalars(
        select(Expense)
        .where(Expense.group_id == group_id)
        .options(
            selectinload(Expense.paid_for),
            selectinload(Expense.documents),
            selectinload(Expense.recurring_expense_link),
        )
        .order_by(Expense.expense_date.asc(), Expense.created_at.asc())
    ))


def _rate(value) -> Optional[str]:
    if value is None:
        return None
    # Numeric приходит Decimal с хвостом нулей: 1.500000 -> "1.5"
    return format(value.normalize(), "f")


def _paid_for(e: Expense):
    return [
        {"participantId": pf.participant_id, "shares": pf.shares}
        for pf in sorted(e.paid_for, key=lambda x: x.participant_id)
    ]


def build_backup(db: Session, group_id: str, *, exported_at: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    group = _load_group(db, group_id)
    if group is None:
        return None

    expenses = _group_expenses(db, group_id)
    activities = list(db.scalars(
        select(Activity).where(Activity.group_id == group_id).order_by(Activity.time.asc())
    ))

    return {
        "version": BACKUP_VERSION,
        "exportedAt": iso_z(exported_at or utc_now()),
        "group": {
            "id": group.id,
            "name": group.name,
            "information": group.information,
            "currency": group.currency,
            "currencyCode": group.currency_code,
            "createdAt": iso_z(group.created_at),
        },
        "participants": [{"id": p.id, "name": p.name} for p in group.participants],
        "expenses": [
            {
                "id": e.id,
                "expenseDate": iso_z(e.expense_date),
                "createdAt": iso_z(e.created_at),
                "title": e.title,
                "category": (
                    {"id": e.category.id, "name": e.category.name, "grouping": e.category.grouping}
                    if e.category else None
                ),
                "amount": e.amount,
                "originalAmount": e.original_amount,
                "originalCurrency": e.original_currency,
                "conversionRate": _rate(e.conversion_rate),
                "paidById": e.paid_by_id,
                "paidFor": _paid_for(e),
                "isReimbursement": bool(e.is_reimbursement),
                "splitMode": e.split_mode.value,
                "notes": e.notes,
                "documents": [
                    {"id": d.id, "url": d.url, "width": d.width, "height": d.height}
                    for d in e.documents
                ],
                "recurrenceRule": e.recurrence_rule.value if e.recurrence_rule else None,
                "recurringExpenseLink": (
                    {
                        "id": e.recurring_expense_link.id,
                        "nextExpenseCreatedAt": iso_z(e.recurring_expense_link.next_expense_created_at),
                        "nextExpenseDate": iso_z(e.recurring_expense_link.next_expense_date),
                    }
                    if e.recurring_expense_link else None
                ),
            }
            for e in expenses
        ],
        "activities": [
            {
                "id": a.id,
                "time": iso_z(a.time),
                "activityType": a.activity_type.value,
                "participantId": a.participant_id,
                "expenseId": a.expense_id,
                "data": a.data,
            }
            for a in activities
        ],
    }


def build_backup_archive(backup: Dict[str, Any]) -> bytes:
    metadata = {
        "version": backup["version"],
        "exportedAt": backup["exportedAt"],
        "groupId": backup["group"]["id"],
        "groupName": backup["group"]["name"],
    }
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("backup.json", json.dumps(backup, ensure_ascii=False, indent=2))
        zf.writestr("metadata.json", json.dumps(metadata, ensure_ascii=False, indent=2))
    return buf.getvalue()


def backup_filename(group_name: str, today: Optional[date] = None) -> str:
    return f"Splitto-Backup-{group_name}-{(today or utc_now().date()).isoformat()}.zip"


def content_disposition(filename: str) -> str:
    """attachment; filename="..." + filename*=UTF-8''... для не-ASCII имён (RFC 6266)."""
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace('"', "'").replace("?", "_")
    if ascii_name == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def build_json_export(db: Session, group_id: str) -> Optional[Dict[str, Any]]:
    group = _load_group(db, group_id)
    if group is None:
        return None

    return {
        "id": group.id,
        "name": group.name,
        "currency": group.currency,
        "currencyCode": group.currency_code,
        "expenses": [
            {
                "createdAt": iso_z(e.created_at),
                "expenseDate": iso_z(e.expense_date),
                "title": e.title,
                "category": (
                    {"grouping": e.category.grouping, "name": e.category.name}
                    if e.category else None
                ),
                "amount": e.amount,
                "originalAmount": e.original_amount,
                "originalCurrency": e.original_currency,
                "conversionRate": _rate(e.conversion_rate),
                "paidById": e.paid_by_id,
                "paidFor": _paid_for(e),
                "isReimbursement": bool(e.is_reimbursement),
                "splitMode": e.split_mode.value,
                "recurrenceRule": e.recurrence_rule.value if e.recurrence_rule else None,
            }
            for e in _group_expenses(db, group_id)
        ],
        "participants": [{"id": p.id, "name": p.name} for p in group.participants],
    }
