"""Expense tracker transactions table.

Revision ID: 0001_et_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_et_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "et_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("type", sa.String(7), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("type in ('INCOME','EXPENSE')", name="ck_et_tx_type"),
    )
    op.create_index("ix_et_tx_date", "et_transactions", ["date"])
    op.create_index("ix_et_tx_type_date", "et_transactions", ["type", "date"])


def downgrade() -> None:
    op.drop_index("ix_et_tx_type_date", table_name="et_transactions")
    op.drop_index("ix_et_tx_date", table_name="et_transactions")
    op.drop_table("et_transactions")
