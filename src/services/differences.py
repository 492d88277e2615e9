# src/services/differences.py
# Дифф снимка и живой группы для превью перед импортом. Только информативно —
# на решение о восстановлении не влияет.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from src.schemas.snapshot import BackupData, JSONImportData
from src.services.versions import LiveGroupSummary
from src.utils.dates import day_key


@dataclass
class SnapshotKeys:
    """Ключи сущностей одной стороны сравнения (снимка или живой группы)."""
    participant_ids: List[str] = field(default_factory=list)
    expense_keys: List[str] = field(default_factory=list)


@dataclass
class Differences:
    added_expenses: int = 0
    removed_expenses: int = 0
    modified_expenses: int = 0
    added_participants: int = 0
    removed_participants: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "addedExpenses": self.added_expenses,
            "removedExpenses": self.removed_expenses,
            "modifiedExpenses": self.modified_expenses,
            "addedParticipants": self.added_participants,
            "removedParticipants": self.removed_participants,
        }


def expense_heuristic_key(expense_date, title: str) -> str:
    """
    Псевдо-ключ расхода для формата без id: день + название.
    Два разных расхода с одинаковым названием в один день неотличимы.
    """
    return f"{day_key(expense_date)}:{title}"


def calculate_differences(incoming: SnapshotKeys, existing: SnapshotKeys) -> Differences:
    existing_expenses = set(existing.expense_keys)
    incoming_expenses = set(incoming.expense_keys)
    existing_participants = set(existing.participant_ids)
    incoming_participants = set(incoming.participant_ids)

    return Differences(
        added_expenses=sum(1 for k in incoming.expense_keys if k not in existing_expenses),
        removed_expenses=sum(1 for k in existing.expense_keys if k not in incoming_expenses),
        # глубокое сравнение полей не делаем ни для одного формата
        modified_expenses=0,
        added_participants=sum(1 for p in incoming.participant_ids if p not in existing_participants),
        removed_participants=sum(1 for p in existing.participant_ids if p not in incoming_participants),
    )


def backup_keys(data: BackupData) -> SnapshotKeys:
    return SnapshotKeys(
        participant_ids=[p.id for p in data.participants],
        expense_keys=[e.id for e in data.expenses],
    )


def json_keys(data: JSONImportData) -> SnapshotKeys:
    return SnapshotKeys(
        participant_ids=[p.id for p in data.participants],
        expense_keys=[expense_heuristic_key(e.expense_date, e.title) for e in data.expenses],
    )


def live_keys_by_id(live: LiveGroupSummary) -> SnapshotKeys:
    return SnapshotKeys(participant_ids=list(live.participant_ids), expense_keys=list(live.expense_ids))


def live_keys_by_heuristic(live: LiveGroupSummary) -> SnapshotKeys:
    return SnapshotKeys(
        participant_ids=list(live.participant_ids),
        expense_keys=[
            expense_heuristic_key(d, t) for d, t in zip(live.expense_dates, live.expense_titles)
        ],
    )


def diff_backup(data: BackupData, live: LiveGroupSummary) -> Differences:
    return calculate_differences(backup_keys(data), live_keys_by_id(live))


def diff_json(data: JSONImportData, live: LiveGroupSummary) -> Differences:
    return calculate_differences(json_keys(data), live_keys_by_heuristic(live))
