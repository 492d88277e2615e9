"""
Shared test fixtures: in-memory SQLite database, sessions, API client and snapshot builders.
"""

import copy
import io
import json
import zipfile
from typing import Callable, Dict, List, Optional, Set

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.db import Base, enable_sqlite_foreign_keys, get_db
from src.services.blob_store import get_blob_store
from src.services.errors import BlobNotFound, BlobTransientError


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def count_rows(db, model, **filters) -> int:
    stmt = select(func.count()).select_from(model)
    for name, value in filters.items():
        stmt = stmt.where(getattr(model, name) == value)
    return db.scalar(stmt)


@pytest.fixture
def count(db) -> Callable[..., int]:
    """count(Model, group_id="g1") -> number of rows."""
    def _count(model, **filters):
        return count_rows(db, model, **filters)
    return _count


# ============================================================================
# Blob store / document probe fakes
# ============================================================================

class FakeBlobStore:
    """Records deleted keys; keys in `missing`/`failing` raise the matching store errors."""

    def __init__(self, missing: Optional[Set[str]] = None, failing: Optional[Set[str]] = None):
        self.deleted: List[str] = []
        self.missing = set(missing or ())
        self.failing = set(failing or ())

    def delete(self, key: str) -> None:
        if key in self.missing:
            raise BlobNotFound(f"Blob not found: {key}")
        if key in self.failing:
            raise BlobTransientError(f"Failed to delete blob {key}")
        self.deleted.append(key)


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def make_blob_store():
    """Factory for stores with preset missing/failing keys."""
    return FakeBlobStore


@pytest.fixture
def reachable_urls() -> Set[str]:
    """URLs the fake document probe reports as reachable; tests may mutate it."""
    return {"https://cdn.example.com/media/documents/d1.jpg"}


@pytest.fixture
def probe(reachable_urls):
    def _probe(url: str) -> bool:
        return url in reachable_urls
    return _probe


# ============================================================================
# API client
# ============================================================================

@pytest.fixture
def client(session_factory, blob_store, probe):
    from src.main import app
    from src.routers.backup import get_url_probe

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_url_probe] = lambda: probe
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ============================================================================
# Snapshot builders
# ============================================================================

BACKUP_SNAPSHOT: Dict = {
    "version": "1.0.0",
    "exportedAt": "2024-05-10T12:00:00.000Z",
    "group": {
        "id": "g-trip",
        "name": "Trip",
        "information": "Alps, May",
        "currency": "€",
        "currencyCode": "EUR",
        "createdAt": "2024-05-01T08:00:00.000Z",
    },
    "participants": [
        {"id": "p-anna", "name": "Anna"},
        {"id": "p-boris", "name": "Boris"},
    ],
    "expenses": [
        {
            "id": "e-dinner",
            "expenseDate": "2024-05-02T00:00:00.000Z",
            "createdAt": "2024-05-02T20:15:00.000Z",
            "title": "Dinner",
            "category": {"id": 7, "grouping": "Food and Drink", "name": "Dining Out"},
            "amount": 4200,
            "originalAmount": None,
            "originalCurrency": None,
            "conversionRate": None,
            "paidById": "p-anna",
            "paidFor": [
                {"participantId": "p-anna", "shares": 1},
                {"participantId": "p-boris", "shares": 1},
            ],
            "isReimbursement": False,
            "splitMode": "EVENLY",
            "notes": "tip included",
            "documents": [
                {"id": "d1", "url": "https://cdn.example.com/media/documents/d1.jpg", "width": 800, "height": 600},
            ],
            "recurrenceRule": "NONE",
            "recurringExpenseLink": None,
        },
        {
            "id": "e-taxi",
            "expenseDate": "2024-05-03T00:00:00.000Z",
            "createdAt": "2024-05-03T09:30:00.000Z",
            "title": "Taxi",
            "category": {"id": 9, "grouping": "Transportation", "name": "Taxi"},
            "amount": 1500,
            "originalAmount": 1650,
            "originalCurrency": "CHF",
            "conversionRate": "0.909091",
            "paidById": "p-boris",
            "paidFor": [{"participantId": "p-anna", "shares": 2}],
            "isReimbursement": False,
            "splitMode": "BY_SHARES",
            "notes": None,
            "documents": [],
            "recurrenceRule": "WEEKLY",
            "recurringExpenseLink": {
                "id": "r-taxi",
                "nextExpenseCreatedAt": None,
                "nextExpenseDate": "2024-05-10T00:00:00.000Z",
            },
        },
    ],
    "activities": [
        {
            "id": "a-dinner",
            "time": "2024-05-02T20:15:00.000Z",
            "activityType": "CREATE_EXPENSE",
            "participantId": "p-anna",
            "expenseId": "e-dinner",
            "data": "Dinner",
        },
        {
            "id": "a-taxi",
            "time": "2024-05-03T09:30:00.000Z",
            "activityType": "CREATE_EXPENSE",
            "participantId": "p-boris",
            "expenseId": "e-taxi",
            "data": "Taxi",
        },
    ],
}


JSON_SNAPSHOT: Dict = {
    "id": "g-flat",
    "name": "Flat",
    "currency": "$",
    "currencyCode": "USD",
    "participants": [
        {"id": "jp-kate", "name": "Kate"},
        {"id": "jp-leo", "name": "Leo"},
    ],
    "expenses": [
        {
            "createdAt": "2024-06-01T09:00:00.000Z",
            "expenseDate": "2024-06-01T00:00:00.000Z",
            "title": "Rent",
            "category": {"grouping": "Home", "name": "Rent"},
            "amount": 100000,
            "paidById": "jp-kate",
            "paidFor": [
                {"participantId": "jp-kate", "shares": 1},
                {"participantId": "jp-leo", "shares": 1},
            ],
            "isReimbursement": False,
            "splitMode": "EVENLY",
            "recurrenceRule": "MONTHLY",
        },
        {
            "createdAt": "2024-06-03T18:00:00.000Z",
            "expenseDate": "2024-06-03T00:00:00.000Z",
            "title": "Groceries",
            "category": {"grouping": "Food and Drink", "name": "Groceries"},
            "amount": 5400,
            "paidById": "jp-leo",
            "paidFor": [
                {"participantId": "jp-kate", "shares": 1},
                {"participantId": "jp-leo", "shares": 1},
            ],
            "isReimbursement": False,
            "splitMode": "EVENLY",
            "recurrenceRule": "NONE",
        },
        {
            "createdAt": "2024-06-05T10:00:00.000Z",
            "expenseDate": "2024-06-05T00:00:00.000Z",
            "title": "Internet",
            "category": {"grouping": "Home", "name": "Utilities"},
            "amount": 3000,
            "paidById": "jp-kate",
            "paidFor": [{"participantId": "jp-leo", "shares": 1}],
            "isReimbursement": False,
            "splitMode": "weird",
            "recurrenceRule": None,
        },
    ],
}


@pytest.fixture
def make_backup() -> Callable[[], Dict]:
    """Fresh deep copy of the full-backup snapshot dict."""
    return lambda: copy.deepcopy(BACKUP_SNAPSHOT)


@pytest.fixture
def make_json() -> Callable[[], Dict]:
    """Fresh deep copy of the lightweight JSON snapshot dict."""
    return lambda: copy.deepcopy(JSON_SNAPSHOT)


@pytest.fixture
def zip_backup() -> Callable[..., bytes]:
    """zip_backup(payload) -> archive bytes as produced by the export endpoint."""
    def _zip(payload: Dict, *, with_backup_json: bool = True) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            if with_backup_json:
                zf.writestr("backup.json", json.dumps(payload))
            zf.writestr("metadata.json", json.dumps({"version": payload.get("version")}))
        return buf.getvalue()
    return _zip
