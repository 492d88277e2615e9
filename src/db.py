# src/db.py
# Инициализация SQLAlchemy: движок, сессии, Base и явные импорты моделей.

from __future__ import annotations

import os
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./splitto.db"


def _engine_kwargs(url: str) -> dict:
    # Пул настраиваем только для серверных БД; у SQLite свой пул без overflow
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 20,
        "max_overflow": 20,
        "pool_timeout": 60,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))


def enable_sqlite_foreign_keys(target_engine) -> None:
    """SQLite по умолчанию игнорирует ON DELETE CASCADE — включаем PRAGMA на каждом соединении."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _fk_pragma(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

from src.models import (
    group,
    participant,
    category,
    expense,
    expense_paid_for,
    expense_document,
    recurring_expense_link,
    activity,
)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
