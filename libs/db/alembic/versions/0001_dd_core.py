# ruff: noqa: I001
"""Ledger transactions and duplicate-review decisions.

Revision ID: 0001_dd_core
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_dd_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "dd_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.String(), nullable=True),
        sa.Column("provider_transaction_id", sa.String(), nullable=True),
        sa.Column("fingerprint_sha256", sa.CHAR(64), nullable=False, unique=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("raw_record", sa.JSON(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_dd_tx_posted_at", "dd_transactions", ["posted_at"])
    op.create_index("ix_dd_tx_account_posted_at", "dd_transactions", ["account_id", "posted_at"])
    # Provider ids are unique per account; manual entries (NULL) are exempt.
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uniq_dd_tx_account_provider_id
        ON dd_transactions (account_id, provider_transaction_id)
        WHERE provider_transaction_id IS NOT NULL
        """
    )

    op.create_table(
        "dd_match_decisions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "original_id", sa.BigInteger(), sa.ForeignKey("dd_transactions.id"), nullable=False
        ),
        sa.Column(
            "duplicate_id", sa.BigInteger(), sa.ForeignKey("dd_transactions.id"), nullable=False
        ),
        sa.Column("kept_id", sa.BigInteger(), sa.ForeignKey("dd_transactions.id"), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("reasons", sa.JSON(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "action in ('auto_merged','user_approved','user_rejected')",
            name="ck_dd_decision_action",
        ),
        sa.CheckConstraint(
            "kept_id IS NULL OR kept_id = original_id OR kept_id = duplicate_id",
            name="ck_dd_decision_kept",
        ),
    )


def downgrade() -> None:
    op.drop_table("dd_match_decisions")
    op.execute("DROP INDEX IF EXISTS uniq_dd_tx_account_provider_id")
    op.drop_index("ix_dd_tx_account_posted_at", table_name="dd_transactions")
    op.drop_index("ix_dd_tx_posted_at", table_name="dd_transactions")
    op.drop_table("dd_transactions")
