"""
Blob store and group/expense deletion tests.
"""

import pytest
from sqlalchemy import select

from src.models.activity import Activity, ActivityType
from src.models.expense import Expense
from src.models.expense_document import ExpenseDocument
from src.models.expense_paid_for import ExpensePaidFor
from src.models.group import Group
from src.models.participant import Participant
from src.models.recurring_expense_link import RecurringExpenseLink
from src.schemas.snapshot import BackupData
from src.services.blob_store import LocalMediaBlobStore, NullBlobStore, delete_documents_by_urls
from src.services.errors import BlobNotFound, NotFoundError
from src.services.groups import delete_expense, delete_group_with_documents, get_group_document_count
from src.services.restore import restore_backup
from src.utils.media import url_to_media_key


@pytest.fixture
def trip(db, make_backup, probe):
    restore_backup(db, BackupData.model_validate(make_backup()), "create", probe=probe)
    db.commit()
    return "g-trip"


class TestDeleteDocumentsByUrls:

    def test_deletes_by_media_key(self, make_blob_store):
        store = make_blob_store()
        deleted = delete_documents_by_urls(store, [
            "https://cdn.example.com/media/documents/a.jpg",
            "/media/documents/b.jpg",
            "",
        ])
        assert deleted == 2
        assert store.deleted == ["documents/a.jpg", "documents/b.jpg"]

    def test_store_errors_do_not_stop_the_loop(self, make_blob_store):
        store = make_blob_store(missing={"documents/gone.jpg"}, failing={"documents/flaky.jpg"})
        deleted = delete_documents_by_urls(store, [
            "https://cdn.example.com/media/documents/gone.jpg",
            "https://cdn.example.com/media/documents/flaky.jpg",
            "https://cdn.example.com/media/documents/ok.jpg",
        ])
        assert deleted == 1
        assert store.deleted == ["documents/ok.jpg"]


class TestLocalMediaBlobStore:

    def test_delete_file(self, tmp_path):
        target = tmp_path / "documents" / "d1.jpg"
        target.parent.mkdir()
        target.write_bytes(b"jpeg")

        LocalMediaBlobStore(root=tmp_path).delete("documents/d1.jpg")

        assert not target.exists()

    def test_missing_file(self, tmp_path):
        with pytest.raises(BlobNotFound):
            LocalMediaBlobStore(root=tmp_path).delete("documents/none.jpg")

    def test_key_outside_root(self, tmp_path):
        outside = tmp_path.parent / "outside.txt"
        with pytest.raises(BlobNotFound):
            LocalMediaBlobStore(root=tmp_path).delete(f"../{outside.name}")

    def test_allowed_subdirs(self, tmp_path):
        (tmp_path / "avatars").mkdir()
        (tmp_path / "avatars" / "me.png").write_bytes(b"png")
        store = LocalMediaBlobStore(root=tmp_path, allowed_subdirs=("documents",))
        with pytest.raises(BlobNotFound):
            store.delete("avatars/me.png")
        assert (tmp_path / "avatars" / "me.png").exists()


def test_media_key_without_media_prefix():
    assert url_to_media_key("https://bucket.example.com/uploads/x.png") == "x.png"
    assert url_to_media_key(None) is None


class TestDeleteGroup:

    def test_document_count(self, db, trip):
        assert get_group_document_count(db, trip) == 1
        with pytest.raises(NotFoundError):
            get_group_document_count(db, "nope")

    def test_delete_with_documents(self, db, trip, count, blob_store):
        store = blob_store
        deleted = delete_group_with_documents(db, trip, True, store)
        db.commit()

        assert deleted == 1
        assert store.deleted == ["documents/d1.jpg"]
        for model in (Group, Participant, Expense, ExpensePaidFor, ExpenseDocument, RecurringExpenseLink, Activity):
            assert count(model) == 0

    def test_delete_keeps_files_by_default(self, db, trip, count, blob_store):
        store = blob_store
        assert delete_group_with_documents(db, trip, False, store) == 0
        db.commit()
        assert store.deleted == []
        assert count(Group) == 0

    def test_missing_group(self, db):
        with pytest.raises(NotFoundError):
            delete_group_with_documents(db, "nope", True, NullBlobStore())


class TestDeleteExpense:

    def test_removes_expense_and_logs(self, db, trip, count, blob_store):
        store = blob_store
        delete_expense(db, trip, "e-dinner", store, participant_id="p-boris")
        db.commit()

        assert db.get(Expense, "e-dinner") is None
        assert count(ExpensePaidFor, expense_id="e-dinner") == 0
        assert count(ExpenseDocument) == 0
        assert store.deleted == ["documents/d1.jpg"]

        act = db.scalar(select(Activity).where(Activity.activity_type == ActivityType.DELETE_EXPENSE))
        assert act.expense_id == "e-dinner"
        assert act.participant_id == "p-boris"
        assert act.data == '{"title": "Dinner"}'

    def test_recurring_link_goes_with_expense(self, db, trip, count):
        delete_expense(db, trip, "e-taxi", NullBlobStore())
        db.commit()
        assert count(RecurringExpenseLink) == 0

    def test_wrong_group(self, db, trip):
        with pytest.raises(NotFoundError):
            delete_expense(db, "other-group", "e-dinner", NullBlobStore())
