# src/services/restore.py
# -----------------------------------------------------------------------------
# ВОССТАНОВЛЕНИЕ ГРУППЫ ИЗ СНИМКА (create | update | rollback)
# -----------------------------------------------------------------------------
# Режимы:
#   • create   — группы нет: создаём группу, участников, расходы, журнал.
#   • update   — группа есть: обновляем метаданные и ДОБАВЛЯЕМ только то, чего нет.
#                Существующие строки не трогаем и не удаляем.
#   • rollback — стираем расходы/участников/журнал группы и проигрываем снимок заново.
#                Сама строка группы обновляется, а не пересоздаётся (id и внешние ключи живы).
#
# Всё выполняется в одной транзакции вызывающего: здесь нет commit. Любая ошибка
# ссылочной целостности поднимается наружу, роутер делает rollback — частичных
# импортов в БД не бывает.
#
# Документы (только полный бэкап) проверяем HEAD-запросом заранее, параллельно.
# Недоступные пропускаем с предупреждением — импорт из-за них не падает.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Literal, Optional, Sequence, Set, Tuple

import requests
from sqlalchemy import delete, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from src.models.activity import Activity
from src.models.category import Category
from src.models.expense import Expense, RecurrenceRule, SplitMode
from src.models.expense_document import ExpenseDocument
from src.models.expense_paid_for import ExpensePaidFor
from src.models.group import Group
from src.models.participant import Participant
from src.models.recurring_expense_link import RecurringExpenseLink
from src.schemas.snapshot import BackupData, BackupExpense, JSONImportData, JSONExpense, PaidForIn
from src.services.activities import log_import_marker, log_imported_expense, new_id
from src.services.differences import expense_heuristic_key
from src.services.errors import ImportPreconditionError, ReferentialIntegrityError
from src.utils.dates import utc_now

log = logging.getLogger(__name__)

RestoreMode = Literal["create", "update", "rollback"]
RESTORE_MODES = ("create", "update", "rollback")

# ===== Настройки =============================================================

IMPORT_TX_TIMEOUT_MS = int(os.getenv("IMPORT_TX_TIMEOUT_MS", "60000"))
DOCUMENT_PROBE_TIMEOUT = float(os.getenv("DOCUMENT_PROBE_TIMEOUT", "5"))
DOCUMENT_PROBE_WORKERS = int(os.getenv("DOCUMENT_PROBE_WORKERS", "8"))

UrlProbe = Callable[[str], bool]


@dataclass
class RestoreResult:
    mode: str
    success: bool = True
    warnings: List[str] = field(default_factory=list)
    participants_created: int = 0
    expenses_created: int = 0
    activities_created: int = 0


# ===== Документы: проверка доступности =======================================

def check_url_exists(url: str) -> bool:
    """HEAD по URL документа. Любая сетевая ошибка = «недоступен»."""
    try:
        resp = requests.head(url, timeout=DOCUMENT_PROBE_TIMEOUT, allow_redirects=True)
        return resp.ok
    except requests.RequestException as e:
        log.debug("document probe failed for %s: %s", url, e)
        return False


def probe_urls(urls: Iterable[str], probe: UrlProbe = check_url_exists) -> Dict[str, bool]:
    """Проверяет уникальные URL параллельно; порядок вызовов не гарантирован."""
    unique = list(dict.fromkeys(urls))
    if not unique:
        return {}
    workers = max(1, min(DOCUMENT_PROBE_WORKERS, len(unique)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(probe, unique))
    return dict(zip(unique, results))


# ===== Вспомогательные ========================================================

def apply_import_timeout(db: Session) -> None:
    # Большие импорты дольше обычных запросов; таймаут живёт только до конца транзакции
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL statement_timeout = {int(IMPORT_TX_TIMEOUT_MS)}"))


def map_split_mode(value: Optional[str]) -> SplitMode:
    try:
        return SplitMode((value or "").upper())
    except ValueError:
        return SplitMode.EVENLY


def map_recurrence_rule(value: Optional[str]) -> RecurrenceRule:
    try:
        return RecurrenceRule((value or "").upper())
    except ValueError:
        return RecurrenceRule.NONE


def aggregate_paid_for(items: Sequence[PaidForIn]) -> Dict[str, int]:
    """Склеивает повторы одного участника в одну строку (PK expense_id+participant_id)."""
    agg: Dict[str, int] = {}
    for pf in items:
        agg[pf.participant_id] = agg.get(pf.participant_id, 0) + int(pf.shares)
    return agg


def validate_references(expenses: Iterable[BackupExpense | JSONExpense], participant_ids: Set[str]) -> None:
    """Плательщик и все участники долей должны быть в группе. Иначе — ошибка до записи."""
    for exp in expenses:
        if exp.paid_by_id not in participant_ids:
            log.error("import: payer %s not found for expense %r", exp.paid_by_id, exp.title)
            raise ReferentialIntegrityError("paidById", exp.paid_by_id, exp.title)
        for pf in exp.paid_for:
            if pf.participant_id not in participant_ids:
                log.error("import: participant %s not found for expense %r", pf.participant_id, exp.title)
                raise ReferentialIntegrityError("participantId", pf.participant_id, exp.title)


def require_group(db: Session, group_id: str) -> Group:
    group = db.get(Group, group_id)
    if group is None:
        raise ImportPreconditionError("Group not found")
    return group


# ===== Категории: один проход до вставки расходов =============================

def _insert_category_ignore_conflict(db: Session, grouping: str, name: str) -> None:
    """INSERT ... ON CONFLICT DO NOTHING по (grouping, name): параллельный импорт не создаст дубль."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        insert_fn = pg_insert
    elif dialect == "sqlite":
        insert_fn = sqlite_insert
    else:
        db.add(Category(grouping=grouping, name=name))
        db.flush()
        return
    stmt = (
        insert_fn(Category.__table__)
        .values(grouping=grouping, name=name)
        .on_conflict_do_nothing(index_elements=["grouping", "name"])
    )
    db.execute(stmt)


def resolve_categories(db: Session, pairs: Iterable[Tuple[str, str]]) -> Dict[Tuple[str, str], int]:
    """lookup-or-create для каждой уникальной пары (grouping, name)."""
    resolved: Dict[Tuple[str, str], int] = {}
    for grouping, name in dict.fromkeys(pairs):
        stmt = select(Category.id).where(Category.grouping == grouping, Category.name == name)
        cid = db.scalar(stmt)
        if cid is None:
            _insert_category_ignore_conflict(db, grouping, name)
            cid = db.scalar(stmt)
        resolved[(grouping, name)] = cid
    return resolved


def _category_pairs(expenses: Iterable[BackupExpense | JSONExpense]) -> List[Tuple[str, str]]:
    return [(e.category.grouping, e.category.name) for e in expenses if e.category is not None]


# ===== Очистка группы (rollback) ==============================================

def wipe_group_data(db: Session, group_id: str) -> None:
    """Удаляет журнал, расходы (с долями, документами, ссылками повторов) и участников группы."""
    expense_ids = select(Expense.id).where(Expense.group_id == group_id)
    no_sync = {"synchronize_session": False}

    db.execute(delete(Activity).where(Activity.group_id == group_id).execution_options(**no_sync))
    db.execute(delete(ExpensePaidFor).where(ExpensePaidFor.expense_id.in_(expense_ids)).execution_options(**no_sync))
    db.execute(delete(ExpenseDocument).where(ExpenseDocument.expense_id.in_(expense_ids)).execution_options(**no_sync))
    db.execute(delete(RecurringExpenseLink).where(RecurringExpenseLink.group_id == group_id).execution_options(**no_sync))
    db.execute(delete(Expense).where(Expense.group_id == group_id).execution_options(**no_sync))
    db.execute(delete(Participant).where(Participant.group_id == group_id).execution_options(**no_sync))

    # старые ORM-объекты с теми же id иначе конфликтуют со вставкой снимка
    db.expunge_all()


def _set_group_meta(group: Group, *, name: str, currency: str, currency_code: Optional[str]) -> None:
    group.name = name
    group.currency = currency
    group.currency_code = currency_code


def _add_expense_rows(
    db: Session,
    *,
    expense_id: str,
    group_id: str,
    exp: BackupExpense | JSONExpense,
    created_at,
    category_id: Optional[int],
    split_mode: SplitMode,
    recurrence_rule: RecurrenceRule,
    notes: Optional[str] = None,
) -> Expense:
    row = Expense(
        id=expense_id,
        group_id=group_id,
        expense_date=exp.expense_date,
        created_at=created_at,
        title=exp.title,
        category_id=category_id,
        amount=exp.amount,
        original_amount=exp.original_amount,
        original_currency=exp.original_currency,
        conversion_rate=exp.conversion_rate,
        paid_by_id=exp.paid_by_id,
        is_reimbursement=exp.is_reimbursement,
        split_mode=split_mode,
        notes=notes,
        recurrence_rule=recurrence_rule,
    )
    db.add(row)
    for participant_id, shares in aggregate_paid_for(exp.paid_for).items():
        db.add(ExpensePaidFor(expense_id=expense_id, participant_id=participant_id, shares=shares))
    return row


# ===== Полный бэкап ===========================================================

def restore_backup(
    db: Session,
    data: BackupData,
    mode: RestoreMode,
    *,
    probe: UrlProbe = check_url_exists,
) -> RestoreResult:
    """
    Проигрывает полный бэкап. id группы/участников/расходов/журнала сохраняются дословно.
    В update добавляются только участники, расходы и записи журнала с новыми id.
    """
    if mode not in RESTORE_MODES:
        raise ValueError(f"Unknown restore mode: {mode}")

    apply_import_timeout(db)
    g = data.group
    result = RestoreResult(mode=mode)
    snapshot_participant_ids = {p.id for p in data.participants}

    if mode == "create":
        participants = list(data.participants)
        expenses = list(data.expenses)
        activities = list(data.activities)
        validate_references(expenses, snapshot_participant_ids)
        db.add(Group(
            id=g.id,
            name=g.name,
            information=g.information,
            currency=g.currency,
            currency_code=g.currency_code,
            created_at=g.created_at,
        ))
    elif mode == "rollback":
        require_group(db, g.id)
        participants = list(data.participants)
        expenses = list(data.expenses)
        activities = list(data.activities)
        validate_references(expenses, snapshot_participant_ids)
        wipe_group_data(db, g.id)
        group = require_group(db, g.id)
        _set_group_meta(group, name=g.name, currency=g.currency, currency_code=g.currency_code)
        group.information = g.information
    else:
        group = require_group(db, g.id)
        existing_participants = set(db.scalars(select(Participant.id).where(Participant.group_id == g.id)))
        existing_expenses = set(db.scalars(select(Expense.id).where(Expense.group_id == g.id)))
        existing_activities = set(db.scalars(select(Activity.id).where(Activity.group_id == g.id)))
        participants = [p for p in data.participants if p.id not in existing_participants]
        expenses = [e for e in data.expenses if e.id not in existing_expenses]
        activities = [a for a in data.activities if a.id not in existing_activities]
        validate_references(expenses, existing_participants | snapshot_participant_ids)
        _set_group_meta(group, name=g.name, currency=g.currency, currency_code=g.currency_code)
        group.information = g.information

    # доступность документов проверяем до первой записи
    reachable = probe_urls((d.url for e in expenses for d in e.documents), probe)

    for p in participants:
        db.add(Participant(id=p.id, group_id=g.id, name=p.name))
    db.flush()
    result.participants_created = len(participants)

    categories = resolve_categories(db, _category_pairs(expenses))

    for exp in expenses:
        category_id = categories[(exp.category.grouping, exp.category.name)] if exp.category else None
        _add_expense_rows(
            db,
            expense_id=exp.id,
            group_id=g.id,
            exp=exp,
            created_at=exp.created_at,
            category_id=category_id,
            split_mode=exp.split_mode,
            recurrence_rule=map_recurrence_rule(exp.recurrence_rule),
            notes=exp.notes,
        )

        for doc in exp.documents:
            if reachable.get(doc.url):
                # merge = upsert по id: документ мог остаться от прошлого импорта
                db.merge(ExpenseDocument(
                    id=doc.id,
                    url=doc.url,
                    width=doc.width,
                    height=doc.height,
                    expense_id=exp.id,
                ))
            else:
                msg = f'Document not found for expense "{exp.title}": {doc.url}'
                log.warning("restore: %s", msg)
                result.warnings.append(msg)

        link = exp.recurring_expense_link
        if link is not None:
            db.add(RecurringExpenseLink(
                id=link.id,
                group_id=g.id,
                current_frame_expense_id=exp.id,
                next_expense_created_at=link.next_expense_created_at,
                next_expense_date=link.next_expense_date,
            ))
    result.expenses_created = len(expenses)

    for a in activities:
        db.add(Activity(
            id=a.id,
            group_id=g.id,
            time=a.time,
            activity_type=a.activity_type,
            participant_id=a.participant_id,
            expense_id=a.expense_id,
            data=a.data,
        ))
    result.activities_created = len(activities)

    db.flush()
    log.info(
        "restore backup: group=%s mode=%s participants=%d expenses=%d activities=%d warnings=%d",
        g.id, mode, result.participants_created, result.expenses_created,
        result.activities_created, len(result.warnings),
    )
    return result


# ===== Лёгкий JSON-экспорт ====================================================

def restore_json(db: Session, data: JSONImportData, mode: RestoreMode) -> RestoreResult:
    """
    Проигрывает лёгкий JSON-экспорт. id расходов в нём нет — генерируем новые.
    В update «уже есть» определяется по ключу (день, название).
    create/rollback пишут маркер JSON_IMPORT_START (по нему работает undo), все режимы —
    CREATE_EXPENSE на каждый добавленный расход;
    время маркера, журнала и created_at расходов — одно и то же время импорта.
    """
    if mode not in RESTORE_MODES:
        raise ValueError(f"Unknown restore mode: {mode}")

    apply_import_timeout(db)
    import_time = utc_now()
    result = RestoreResult(mode=mode)
    snapshot_participant_ids = {p.id for p in data.participants}

    if mode == "create":
        participants = list(data.participants)
        expenses = list(data.expenses)
        validate_references(expenses, snapshot_participant_ids)
        db.add(Group(
            id=data.id,
            name=data.name,
            currency=data.currency,
            currency_code=data.currency_code,
            created_at=import_time,
        ))
    elif mode == "rollback":
        require_group(db, data.id)
        participants = list(data.participants)
        expenses = list(data.expenses)
        validate_references(expenses, snapshot_participant_ids)
        wipe_group_data(db, data.id)
        group = require_group(db, data.id)
        _set_group_meta(group, name=data.name, currency=data.currency, currency_code=data.currency_code)
    else:
        group = require_group(db, data.id)
        existing_participants = set(db.scalars(select(Participant.id).where(Participant.group_id == data.id)))
        existing_keys = {
            expense_heuristic_key(d, t)
            for d, t in db.execute(
                select(Expense.expense_date, Expense.title).where(Expense.group_id == data.id)
            ).all()
        }
        participants = [p for p in data.participants if p.id not in existing_participants]
        # ключи не пополняем по ходу: одинаковые (день, название) внутри снимка добавятся оба
        expenses = [e for e in data.expenses if expense_heuristic_key(e.expense_date, e.title) not in existing_keys]
        validate_references(expenses, existing_participants | snapshot_participant_ids)
        _set_group_meta(group, name=data.name, currency=data.currency, currency_code=data.currency_code)

    db.flush()

    # update дописывает только CREATE_EXPENSE: его строки покрывает маркер предыдущего create/rollback
    if mode != "update":
        log_import_marker(db, group_id=data.id, mode=mode, expense_count=len(data.expenses), time=import_time)
        result.activities_created += 1

    for p in participants:
        db.add(Participant(id=p.id, group_id=data.id, name=p.name))
    db.flush()
    result.participants_created = len(participants)

    categories = resolve_categories(db, _category_pairs(expenses))

    for exp in expenses:
        expense_id = new_id()
        category_id = categories[(exp.category.grouping, exp.category.name)] if exp.category else None
        _add_expense_rows(
            db,
            expense_id=expense_id,
            group_id=data.id,
            exp=exp,
            created_at=import_time,
            category_id=category_id,
            split_mode=map_split_mode(exp.split_mode),
            recurrence_rule=map_recurrence_rule(exp.recurrence_rule),
        )
        log_imported_expense(db, group_id=data.id, expense_id=expense_id, title=exp.title, time=import_time)
        result.activities_created += 1
    result.expenses_created = len(expenses)

    db.flush()
    log.info(
        "restore json: group=%s mode=%s participants=%d expenses=%d activities=%d",
        data.id, mode, result.participants_created, result.expenses_created, result.activities_created,
    )
    return result
