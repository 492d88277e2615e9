# alembic/versions/20261018_initial_backup_schema.py
"""
Начальная схема: группы, участники, категории, расходы (доли, документы,
цепочки повторов) и журнал активности.
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261018_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SPLIT_MODES = ("EVENLY", "BY_SHARES", "BY_PERCENTAGE", "BY_AMOUNT")
RECURRENCE_RULES = ("NONE", "DAILY", "WEEKLY", "MONTHLY")
ACTIVITY_TYPES = ("UPDATE_GROUP", "CREATE_EXPENSE", "UPDATE_EXPENSE", "DELETE_EXPENSE")


def upgrade() -> None:
    # 1) groups
    op.create_table(
        "groups",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("information", sa.String(), nullable=True, comment="Свободный текст о группе"),
        sa.Column("currency", sa.String(length=16), nullable=False, comment="Символ валюты для отображения, напр. '$'"),
        sa.Column("currency_code", sa.String(length=3), nullable=True, comment="Код валюты ISO-4217 (напр., 'USD'), если задан"),
        sa.Column("created_at", sa.DateTime(), nullable=False, comment="Когда группа создана (UTC)"),
    )
    op.create_index("ix_groups_id", "groups", ["id"])
    op.create_index("ix_groups_name", "groups", ["name"])
    op.create_index("ix_groups_created_at", "groups", ["created_at"])

    # 2) participants
    op.create_table(
        "participants",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("group_id", sa.String(length=64), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_index("ix_participants_id", "participants", ["id"])
    op.create_index("ix_participants_group_id", "participants", ["group_id"])

    # 3) categories — уникальная пара (grouping, name)
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("grouping", sa.String(), nullable=False, comment="Группа категорий, напр. 'Food and Drink'"),
        sa.Column("name", sa.String(), nullable=False, comment="Название категории внутри группы"),
        sa.UniqueConstraint("grouping", "name", name="uq_categories_grouping_name"),
    )
    op.create_index("ix_categories_id", "categories", ["id"])

    # 4) expenses
    op.create_table(
        "expenses",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("group_id", sa.String(length=64), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False,
                  comment="ID группы, к которой относится расход"),
        sa.Column("expense_date", sa.DateTime(), nullable=False, comment="Дата расхода"),
        sa.Column("created_at", sa.DateTime(), nullable=False, comment="Когда создана запись"),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True,
                  comment="Категория (NULL — без категории)"),
        sa.Column("amount", sa.Integer(), nullable=False, comment="Сумма в минорных единицах валюты группы (центы)"),
        sa.Column("original_amount", sa.Integer(), nullable=True, comment="Сумма в исходной валюте (минорные единицы)"),
        sa.Column("original_currency", sa.String(length=3), nullable=True, comment="Исходная валюта ISO-4217"),
        sa.Column("conversion_rate", sa.Numeric(18, 6), nullable=True, comment="Курс пересчёта в валюту группы"),
        sa.Column("paid_by_id", sa.String(length=64), sa.ForeignKey("participants.id"), nullable=False, comment="Кто оплатил"),
        sa.Column("split_mode", sa.Enum(*SPLIT_MODES, name="split_mode"), nullable=False,
                  comment="Способ деления: EVENLY|BY_SHARES|BY_PERCENTAGE|BY_AMOUNT"),
        sa.Column("is_reimbursement", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("recurrence_rule", sa.Enum(*RECURRENCE_RULES, name="recurrence_rule"), nullable=False,
                  comment="Повтор: NONE|DAILY|WEEKLY|MONTHLY"),
    )
    op.create_index("ix_expenses_id", "expenses", ["id"])
    op.create_index("ix_expenses_group_date", "expenses", ["group_id", "expense_date"])
    op.create_index("ix_expenses_group_created", "expenses", ["group_id", "created_at"])

    # 5) expense_paid_for
    op.create_table(
        "expense_paid_for",
        sa.Column("expense_id", sa.String(length=64), sa.ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False,
                  comment="ID расхода"),
        sa.Column("participant_id", sa.String(length=64), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False,
                  comment="ID участника той же группы"),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("expense_id", "participant_id"),
    )
    op.create_index("ix_paid_for_participant", "expense_paid_for", ["participant_id"])

    # 6) expense_documents
    op.create_table(
        "expense_documents",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("url", sa.String(length=1024), nullable=False, comment="Публичный URL файла"),
        sa.Column("width", sa.Integer(), nullable=False),
        sa.Column("height", sa.Integer(), nullable=False),
        sa.Column("expense_id", sa.String(length=64), sa.ForeignKey("expenses.id", ondelete="CASCADE"), nullable=True),
    )
    op.create_index("ix_expense_documents_id", "expense_documents", ["id"])
    op.create_index("ix_expense_documents_expense_id", "expense_documents", ["expense_id"])

    # 7) recurring_expense_links
    op.create_table(
        "recurring_expense_links",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("group_id", sa.String(length=64), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("current_frame_expense_id", sa.String(length=64), sa.ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("next_expense_created_at", sa.DateTime(), nullable=True,
                  comment="Когда следующий расход был создан (NULL — ещё нет)"),
        sa.Column("next_expense_date", sa.DateTime(), nullable=False, comment="Дата следующего расхода цепочки"),
        sa.UniqueConstraint("current_frame_expense_id", name="uq_recurring_link_current_frame"),
    )
    op.create_index("ix_recurring_expense_links_id", "recurring_expense_links", ["id"])
    op.create_index(
        "ix_recurring_links_group_next",
        "recurring_expense_links",
        ["group_id", "next_expense_created_at", "next_expense_date"],
    )

    # 8) activities (expense_id без FK — журнал переживает удаление расхода)
    op.create_table(
        "activities",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("group_id", sa.String(length=64), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("time", sa.DateTime(), nullable=False),
        sa.Column("activity_type", sa.Enum(*ACTIVITY_TYPES, name="activity_type"), nullable=False),
        sa.Column("participant_id", sa.String(length=64), nullable=True),
        sa.Column("expense_id", sa.String(length=64), nullable=True),
        sa.Column("data", sa.String(), nullable=True),
    )
    op.create_index("ix_activities_id", "activities", ["id"])
    op.create_index("ix_activities_group_time", "activities", ["group_id", "time"])


def downgrade() -> None:
    op.drop_index("ix_activities_group_time", table_name="activities")
    op.drop_index("ix_activities_id", table_name="activities")
    op.drop_table("activities")

    op.drop_index("ix_recurring_links_group_next", table_name="recurring_expense_links")
    op.drop_index("ix_recurring_expense_links_id", table_name="recurring_expense_links")
    op.drop_table("recurring_expense_links")

    op.drop_index("ix_expense_documents_expense_id", table_name="expense_documents")
    op.drop_index("ix_expense_documents_id", table_name="expense_documents")
    op.drop_table("expense_documents")

    op.drop_index("ix_paid_for_participant", table_name="expense_paid_for")
    op.drop_table("expense_paid_for")

    op.drop_index("ix_expenses_group_created", table_name="expenses")
    op.drop_index("ix_expenses_group_date", table_name="expenses")
    op.drop_index("ix_expenses_id", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_categories_id", table_name="categories")
    op.drop_table("categories")

    op.drop_index("ix_participants_group_id", table_name="participants")
    op.drop_index("ix_participants_id", table_name="participants")
    op.drop_table("participants")

    op.drop_index("ix_groups_created_at", table_name="groups")
    op.drop_index("ix_groups_name", table_name="groups")
    op.drop_index("ix_groups_id", table_name="groups")
    op.drop_table("groups")

    # ENUM-типы Postgres живут отдельно от таблиц
    bind = op.get_bind()
    for name in ("activity_type", "recurrence_rule", "split_mode"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
