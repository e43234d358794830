"""budgets, budget items and overrides

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_budgets_user", "budgets", ["user_id"])

    op.create_table(
        "budget_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "budget_id", sa.Integer(), sa.ForeignKey("budgets.id"), nullable=False
        ),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("category", sa.String(length=60), nullable=False),
        sa.Column("emoji", sa.String(length=8), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column(
            "is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("start_month", sa.String(length=7), nullable=False),
        sa.Column("end_month", sa.String(length=7), nullable=True),
        sa.Column("interval_months", sa.Integer(), nullable=True),
        sa.Column("interval_weeks", sa.Integer(), nullable=True),
        sa.Column("weekday", sa.Integer(), nullable=True),
        sa.Column("anchor_day", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "end_month IS NULL OR end_month >= start_month",
            name="ck_budget_item_month_order",
        ),
        sa.CheckConstraint(
            "interval_months IS NULL OR interval_months BETWEEN 1 AND 12",
            name="ck_budget_item_interval_months",
        ),
        sa.CheckConstraint(
            "interval_weeks IS NULL OR interval_weeks BETWEEN 1 AND 52",
            name="ck_budget_item_interval_weeks",
        ),
        sa.CheckConstraint(
            "weekday IS NULL OR weekday BETWEEN 1 AND 7",
            name="ck_budget_item_weekday",
        ),
        sa.CheckConstraint(
            "anchor_day IS NULL OR anchor_day BETWEEN 1 AND 31",
            name="ck_budget_item_anchor_day",
        ),
    )
    op.create_index(
        "ix_budget_items_budget_start", "budget_items", ["budget_id", "start_month"]
    )

    op.create_table(
        "budget_overrides",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "budget_item_id",
            sa.Integer(),
            sa.ForeignKey("budget_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("override_amount", sa.Integer(), nullable=True),
        sa.Column("skip", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "budget_item_id", "month", name="uq_budget_override_item_month"
        ),
    )
    op.create_index(
        "ix_budget_override_item_month",
        "budget_overrides",
        ["budget_item_id", "month"],
    )


def downgrade() -> None:
    op.drop_index("ix_budget_override_item_month", table_name="budget_overrides")
    op.drop_table("budget_overrides")
    op.drop_index("ix_budget_items_budget_start", table_name="budget_items")
    op.drop_table("budget_items")
    op.drop_index("ix_budgets_user", table_name="budgets")
    op.drop_table("budgets")
