# alembic/env.py

import sys
import os

from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context
from dotenv import load_dotenv

# --- Загрузка переменных окружения из .env ---
load_dotenv()

# --- Корень репозитория в sys.path, чтобы работал импорт src.* ---
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# --- Base и все модели (src.db импортирует их сам) ---
from src.db import Base, DATABASE_URL

# --- Конфигурируем Alembic ---
config = context.config

# --- Логирование Alembic ---
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# --- Строка подключения: та же, что у приложения (DATABASE_URL) ---
db_url = DATABASE_URL

def run_migrations_offline():
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        compare_server_default=True
    )
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    connectable = create_engine(
        db_url,
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            # SQLite не умеет ALTER для большинства изменений
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
