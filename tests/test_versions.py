"""
Unit tests for snapshot-vs-live version comparison and restore mode derivation.
"""

from datetime import datetime

import pytest

from src.schemas.snapshot import BackupData, JSONImportData
from src.services.errors import ImportPreconditionError
from src.services.versions import (
    LiveGroupSummary,
    VersionComparison,
    VersionComparisonResult,
    compare_backup,
    compare_json,
    compare_versions,
    comparison_payload,
    derive_restore_mode,
    json_snapshot_at,
    live_updated_at,
)
from src.utils.dates import EPOCH

CREATED = datetime(2024, 5, 1, 8, 0)


def live(expense_created=(), activities=(), expense_dates=()):
    return LiveGroupSummary(
        created_at=CREATED,
        expense_created_at=list(expense_created),
        expense_dates=list(expense_dates),
        activity_times=list(activities),
    )


class TestCompareVersions:

    def test_absent_group_is_not_found(self):
        snapshot_at = datetime(2024, 5, 10)
        cmp = compare_versions(snapshot_at, None)
        assert cmp.result == VersionComparisonResult.NOT_FOUND
        assert cmp.snapshot_at == snapshot_at
        assert cmp.live_updated_at is None

    @pytest.mark.parametrize("snapshot_at,expected", [
        (datetime(2024, 5, 3, 12, 0, 0, 1000), VersionComparisonResult.NEWER),
        (datetime(2024, 5, 3, 11, 59), VersionComparisonResult.OLDER),
        (datetime(2024, 5, 3, 12, 0), VersionComparisonResult.SAME),
    ])
    def test_strict_classification(self, snapshot_at, expected):
        summary = live(expense_created=[datetime(2024, 5, 2), datetime(2024, 5, 3, 12, 0)])
        cmp = compare_versions(snapshot_at, summary)
        assert cmp.result == expected
        assert cmp.live_updated_at == datetime(2024, 5, 3, 12, 0)

    def test_latest_activity_wins_over_expenses(self):
        summary = live(
            expense_created=[datetime(2024, 5, 2)],
            activities=[datetime(2024, 5, 9), datetime(2024, 5, 4)],
        )
        cmp = compare_versions(datetime(2024, 5, 8), summary)
        assert cmp.result == VersionComparisonResult.OLDER
        assert cmp.live_updated_at == datetime(2024, 5, 9)

    def test_empty_group_falls_back_to_creation_time(self):
        assert live_updated_at([], [], CREATED) == CREATED
        assert compare_versions(CREATED, live()).result == VersionComparisonResult.SAME

    def test_unordered_input_gives_same_latest(self):
        times = [datetime(2024, 5, 5), datetime(2024, 5, 9), datetime(2024, 5, 2)]
        assert live_updated_at(times, [], CREATED) == live_updated_at(list(reversed(times)), [], CREATED)


class TestSnapshotTimestamps:

    def test_backup_uses_exported_at(self, make_backup):
        data = BackupData.model_validate(make_backup())
        cmp = compare_backup(data, live(expense_created=[datetime(2024, 5, 3, 9, 30)]))
        assert cmp.snapshot_at == datetime(2024, 5, 10, 12, 0)
        assert cmp.result == VersionComparisonResult.NEWER

    def test_json_uses_latest_expense_date(self, make_json):
        data = JSONImportData.model_validate(make_json())
        assert json_snapshot_at(data) == datetime(2024, 6, 5)

    def test_json_without_expenses_is_epoch(self, make_json):
        payload = make_json()
        payload["expenses"] = []
        assert json_snapshot_at(JSONImportData.model_validate(payload)) == EPOCH

    def test_json_compares_against_expense_dates(self, make_json):
        data = JSONImportData.model_validate(make_json())
        # created_at свежее, но для лёгкого формата считаются даты расходов
        summary = live(
            expense_created=[datetime(2024, 7, 1)],
            expense_dates=[datetime(2024, 6, 1)],
        )
        assert compare_json(data, summary).result == VersionComparisonResult.NEWER


class TestDeriveRestoreMode:

    def _cmp(self, result):
        return VersionComparison(result=result, snapshot_at=datetime(2024, 1, 1))

    def test_not_found_is_create_even_for_rollback(self):
        assert derive_restore_mode(self._cmp(VersionComparisonResult.NOT_FOUND), "rollback") == "create"

    def test_explicit_rollback(self):
        assert derive_restore_mode(self._cmp(VersionComparisonResult.OLDER), "rollback") == "rollback"

    def test_newer_is_update(self):
        assert derive_restore_mode(self._cmp(VersionComparisonResult.NEWER), "restore") == "update"

    @pytest.mark.parametrize("result", [VersionComparisonResult.OLDER, VersionComparisonResult.SAME])
    def test_not_newer_restore_is_rejected(self, result):
        with pytest.raises(ImportPreconditionError) as exc:
            derive_restore_mode(self._cmp(result), "restore", label="JSON export")
        assert exc.value.message == (
            "JSON export is not newer than existing group. Use rollback to restore older version."
        )
        assert exc.value.status_code == 400


def test_comparison_payload_uses_iso_timestamps():
    cmp = VersionComparison(
        result=VersionComparisonResult.OLDER,
        snapshot_at=datetime(2024, 5, 10, 12, 0),
        live_updated_at=datetime(2024, 5, 11, 8, 30, 0, 250000),
    )
    assert comparison_payload(cmp, snapshot_key="backupExportedAt") == {
        "result": "OLDER",
        "existingGroupUpdatedAt": "2024-05-11T08:30:00.250Z",
        "backupExportedAt": "2024-05-10T12:00:00.000Z",
    }
