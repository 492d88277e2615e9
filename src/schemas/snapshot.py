# src/schemas/snapshot.py
# -----------------------------------------------------------------------------
# СХЕМЫ Pydantic: снимки группы для импорта
# -----------------------------------------------------------------------------
# Два формата:
#   • BackupData   — полный бэкап (zip: backup.json + metadata.json), стабильные id,
#                    документы, цепочки повторов и журнал активности.
#   • JSONImportData — лёгкий JSON-экспорт: без id расходов, без журнала и вложений.
# Ключи во входных файлах — camelCase, поля моделей — snake_case (alias_generator).
# Все даты приводим к «наивному» UTC сразу при разборе.
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, AfterValidator
from pydantic.alias_generators import to_camel

from src.models.activity import ActivityType
from src.models.expense import SplitMode
from src.utils.dates import to_naive_utc

UtcDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


class SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaidForIn(SnapshotModel):
    participant_id: str
    shares: int = 1


class ParticipantIn(SnapshotModel):
    id: str
    name: str


# ===== Полный бэкап ===========================================================

class BackupGroup(SnapshotModel):
    id: str
    name: str
    information: Optional[str] = None
    currency: str = "$"
    currency_code: Optional[str] = None
    created_at: UtcDateTime


class BackupCategory(SnapshotModel):
    # id из исходной БД только для справки — при восстановлении ищем по (grouping, name)
    id: Optional[int] = None
    name: str
    grouping: str


class BackupDocument(SnapshotModel):
    id: str
    url: str
    width: int = 0
    height: int = 0


class BackupRecurringLink(SnapshotModel):
    id: str
    next_expense_created_at: Optional[UtcDateTime] = None
    next_expense_date: UtcDateTime


class BackupExpense(SnapshotModel):
    id: str
    expense_date: UtcDateTime
    created_at: UtcDateTime
    title: str
    category: Optional[BackupCategory] = None
    amount: int
    original_amount: Optional[int] = None
    original_currency: Optional[str] = None
    conversion_rate: Optional[Decimal] = None
    paid_by_id: str
    paid_for: List[PaidForIn] = Field(default_factory=list)
    is_reimbursement: bool = False
    split_mode: SplitMode = SplitMode.EVENLY
    notes: Optional[str] = None
    documents: List[BackupDocument] = Field(default_factory=list)
    recurrence_rule: Optional[str] = None
    recurring_expense_link: Optional[BackupRecurringLink] = None


class BackupActivity(SnapshotModel):
    id: str
    time: UtcDateTime
    activity_type: ActivityType
    participant_id: Optional[str] = None
    expense_id: Optional[str] = None
    data: Optional[str] = None


class BackupData(SnapshotModel):
    version: str = Field(..., min_length=1)
    exported_at: UtcDateTime
    group: BackupGroup
    participants: List[ParticipantIn] = Field(default_factory=list)
    expenses: List[BackupExpense] = Field(default_factory=list)
    activities: List[BackupActivity] = Field(default_factory=list)


# ===== Лёгкий JSON-экспорт ====================================================

class JSONCategory(SnapshotModel):
    grouping: str
    name: str


class JSONExpense(SnapshotModel):
    created_at: Optional[UtcDateTime] = None
    expense_date: UtcDateTime
    title: str
    category: Optional[JSONCategory] = None
    amount: int
    original_amount: Optional[int] = None
    original_currency: Optional[str] = None
    conversion_rate: Optional[Decimal] = None
    paid_by_id: str
    paid_for: List[PaidForIn] = Field(default_factory=list)
    is_reimbursement: bool = False
    # строки, а не Enum: неизвестные значения мягко сводим к EVENLY/NONE
    split_mode: str = "EVENLY"
    recurrence_rule: Optional[str] = None


class JSONImportData(SnapshotModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    currency: str = "$"
    currency_code: Optional[str] = None
    expenses: List[JSONExpense]
    participants: List[ParticipantIn]
