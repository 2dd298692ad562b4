from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CHAR,
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BIGINT identity on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY.
_PK = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: dd_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "dd_transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[str | None] = mapped_column(String, nullable=True)
    # Identifier assigned by the bank-data aggregator; NULL for manual entries.
    provider_transaction_id: Mapped[str | None] = mapped_column(String, nullable=True)
    fingerprint_sha256: Mapped[str] = mapped_column(CHAR(64), nullable=False, unique=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    posted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    raw_record: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    # Merged duplicates are soft-deleted so review decisions stay auditable.
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_dd_tx_posted_at", "posted_at"),
        Index("ix_dd_tx_account_posted_at", "account_id", "posted_at"),
        # Partial unique index (account_id, provider_transaction_id) WHERE
        # provider_transaction_id IS NOT NULL is created by migration 0001.
    )


# ---------------------------
# Review log: dd_match_decisions
# ---------------------------


class MatchDecision(Base):
    __tablename__ = "dd_match_decisions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    original_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("dd_transactions.id"), nullable=False
    )
    duplicate_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("dd_transactions.id"), nullable=False
    )
    # NULL when the match was rejected (both rows kept).
    kept_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("dd_transactions.id"), nullable=True
    )
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reasons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    action: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "action in ('auto_merged','user_approved','user_rejected')",
            name="ck_dd_decision_action",
        ),
        CheckConstraint(
            "kept_id IS NULL OR kept_id = original_id OR kept_id = duplicate_id",
            name="ck_dd_decision_kept",
        ),
    )


__all__ = [
    "Base",
    "LedgerTransaction",
    "MatchDecision",
]
