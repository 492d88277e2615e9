"""
Unit tests for the import preview diff.
"""

from datetime import datetime

from src.schemas.snapshot import BackupData, JSONImportData
from src.services.differences import (
    SnapshotKeys,
    calculate_differences,
    diff_backup,
    diff_json,
    expense_heuristic_key,
)
from src.services.versions import LiveGroupSummary


class TestCalculateDifferences:

    def test_counts_both_directions(self):
        incoming = SnapshotKeys(participant_ids=["a", "b", "c"], expense_keys=["e1", "e2", "e3"])
        existing = SnapshotKeys(participant_ids=["a", "d"], expense_keys=["e1", "e4"])

        diff = calculate_differences(incoming, existing)

        assert diff.as_dict() == {
            "addedExpenses": 2,
            "removedExpenses": 1,
            "modifiedExpenses": 0,
            "addedParticipants": 2,
            "removedParticipants": 1,
        }

    def test_role_reversal(self):
        a = SnapshotKeys(participant_ids=["p1", "p2"], expense_keys=["e1", "e2", "e5"])
        b = SnapshotKeys(participant_ids=["p2", "p3", "p4"], expense_keys=["e2", "e3"])

        ab = calculate_differences(a, b)
        ba = calculate_differences(b, a)

        assert ab.added_expenses == ba.removed_expenses
        assert ab.removed_expenses == ba.added_expenses
        assert ab.added_participants == ba.removed_participants
        assert ab.removed_participants == ba.added_participants

    def test_identical_sets(self):
        keys = SnapshotKeys(participant_ids=["p1"], expense_keys=["e1"])
        assert calculate_differences(keys, keys).as_dict() == {
            "addedExpenses": 0,
            "removedExpenses": 0,
            "modifiedExpenses": 0,
            "addedParticipants": 0,
            "removedParticipants": 0,
        }


class TestFormatDiffs:

    def test_backup_diff_is_by_id(self, make_backup):
        data = BackupData.model_validate(make_backup())
        summary = LiveGroupSummary(
            created_at=datetime(2024, 5, 1),
            participant_ids=["p-anna", "p-zoe"],
            expense_ids=["e-dinner", "e-old"],
            expense_dates=[datetime(2024, 5, 2), datetime(2024, 4, 1)],
            expense_titles=["Dinner", "Old"],
        )

        diff = diff_backup(data, summary)

        assert diff.added_expenses == 1      # e-taxi
        assert diff.removed_expenses == 1    # e-old
        assert diff.added_participants == 1  # p-boris
        assert diff.removed_participants == 1

    def test_json_diff_uses_day_and_title(self, make_json):
        data = JSONImportData.model_validate(make_json())
        summary = LiveGroupSummary(
            created_at=datetime(2024, 6, 1),
            participant_ids=["jp-kate", "jp-leo"],
            expense_ids=["x1", "x2"],
            # другое время того же дня — тот же расход
            expense_dates=[datetime(2024, 6, 1, 15, 45), datetime(2024, 6, 3)],
            expense_titles=["Rent", "Groceries (edited)"],
        )

        diff = diff_json(data, summary)

        assert diff.added_expenses == 2      # Groceries, Internet
        assert diff.removed_expenses == 1    # Groceries (edited)
        assert diff.modified_expenses == 0
        assert diff.added_participants == 0
        assert diff.removed_participants == 0


def test_heuristic_key_ignores_time_of_day():
    assert expense_heuristic_key(datetime(2024, 6, 1, 0, 0), "Rent") == "2024-06-01:Rent"
    assert expense_heuristic_key(datetime(2024, 6, 1, 23, 59), "Rent") == "2024-06-01:Rent"
    assert expense_heuristic_key(datetime(2024, 6, 1), "Rent") != expense_heuristic_key(datetime(2024, 6, 1), "rent")
