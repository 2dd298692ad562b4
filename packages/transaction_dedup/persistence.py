# ruff: noqa: I001
"""Persistence integration for transaction_dedup.

Functions here read and write ledger transactions in the shared database
owned by ``libs/db``. They rely on SQLAlchemy ORM models defined in
``db.models.ledger`` and a session provided by ``db.client``. Callers own
the transaction boundary (commit/rollback).

Scope:
- Upsert transactions into ``dd_transactions``.
- Load candidate pools (date-window prefilter) and date ranges for scans.
- Convert ORM rows back into :class:`~transaction_dedup.models.Transaction`.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.ledger import LedgerTransaction
from .logging_setup import get_logger
from .models import Transaction
from .scan import candidate_window
from .settings import DEFAULT_SETTINGS, DeduplicationSettings

logger = get_logger("transaction_dedup.persistence")


def _amount_2dp(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _utc(dt: datetime) -> datetime:
    # Stored in UTC so SQLite (no tz support) compares consistently.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _row_id(txn: Transaction) -> int | None:
    if txn.id is None:
        return None
    try:
        return int(txn.id)
    except ValueError:
        return None


def compute_fingerprint(txn: Transaction) -> str:
    """Compute a stable SHA-256 fingerprint over canonical fields.

    Fields used: account id, provider transaction id, amount (2dp string),
    timestamp (UTC ISO-8601), description (trimmed).
    """

    payload = {
        "account_id": txn.account_id,
        "provider_transaction_id": txn.provider_transaction_id,
        "amount": f"{_amount_2dp(txn.amount):.2f}",
        "posted_at": _utc(txn.date).isoformat(),
        "description": txn.description.strip(),
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _find_existing(session: Session, txn: Transaction, fingerprint: str) -> LedgerTransaction | None:
    if txn.provider_transaction_id is not None:
        stmt = select(LedgerTransaction).where(
            LedgerTransaction.provider_transaction_id == txn.provider_transaction_id
        )
        if txn.account_id is None:
            stmt = stmt.where(LedgerTransaction.account_id.is_(None))
        else:
            stmt = stmt.where(LedgerTransaction.account_id == txn.account_id)
        row = session.execute(stmt.limit(1)).scalar_one_or_none()
        if row is not None:
            return row
    return session.execute(
        select(LedgerTransaction).where(LedgerTransaction.fingerprint_sha256 == fingerprint)
    ).scalar_one_or_none()


def upsert_transactions(session: Session, transactions: Iterable[Transaction]) -> list[int]:
    """Insert or update ``transactions``; return their row ids in input order.

    Idempotency rules:
    - With a provider transaction id, match on ``(account_id,
      provider_transaction_id)``.
    - Otherwise (or when no such row exists), match on the fingerprint.
    """

    ids: list[int] = []
    for txn in transactions:
        fingerprint = compute_fingerprint(txn)
        row = _find_existing(session, txn, fingerprint)
        if row is None:
            row = LedgerTransaction(
                account_id=txn.account_id,
                provider_transaction_id=txn.provider_transaction_id,
                fingerprint_sha256=fingerprint,
                amount=_amount_2dp(txn.amount),
                description=txn.description,
                posted_at=_utc(txn.date),
                raw_record={"id": txn.id} if txn.id is not None else None,
            )
            session.add(row)
        else:
            row.amount = _amount_2dp(txn.amount)
            row.description = txn.description
            row.posted_at = _utc(txn.date)
            row.fingerprint_sha256 = fingerprint
            row.updated_at = func.now()
        session.flush()
        ids.append(row.id)
    logger.debug("upserted %d transactions", len(ids))
    return ids


def row_to_transaction(row: LedgerTransaction) -> Transaction:
    """Convert an ORM row to a :class:`Transaction` whose ``id`` is the row id."""

    return Transaction(
        amount=row.amount,
        description=row.description,
        date=row.posted_at,
        account_id=row.account_id,
        provider_transaction_id=row.provider_transaction_id,
        id=str(row.id),
    )


def get_transaction(session: Session, transaction_id: int) -> Transaction | None:
    """Return the live (non-deleted) transaction with ``transaction_id``."""

    row = session.get(LedgerTransaction, transaction_id)
    if row is None or row.is_deleted:
        return None
    return row_to_transaction(row)


def load_candidates(
    session: Session,
    txn: Transaction,
    settings: DeduplicationSettings | None = None,
    *,
    stored: bool = True,
) -> list[Transaction]:
    """Return live transactions inside ``txn``'s candidate window.

    When ``stored`` is set, ``txn.id`` is taken as its own row id and that row
    is excluded. Pass ``stored=False`` for transactions not yet written.
    """

    start, end = candidate_window(_utc(txn.date), settings or DEFAULT_SETTINGS)
    stmt = (
        select(LedgerTransaction)
        .where(LedgerTransaction.is_deleted.is_(False))
        .where(LedgerTransaction.posted_at >= start)
        .where(LedgerTransaction.posted_at <= end)
        .order_by(LedgerTransaction.posted_at, LedgerTransaction.id)
    )
    own_id = _row_id(txn) if stored else None
    if own_id is not None:
        stmt = stmt.where(LedgerTransaction.id != own_id)
    return [row_to_transaction(r) for r in session.execute(stmt).scalars()]


def load_range(
    session: Session,
    start: datetime,
    end: datetime,
    *,
    account_id: str | None = None,
) -> list[Transaction]:
    """Return live transactions posted within ``[start, end]``, newest first."""

    stmt = (
        select(LedgerTransaction)
        .where(LedgerTransaction.is_deleted.is_(False))
        .where(LedgerTransaction.posted_at >= _utc(start))
        .where(LedgerTransaction.posted_at <= _utc(end))
        .order_by(LedgerTransaction.posted_at.desc(), LedgerTransaction.id)
    )
    if account_id is not None:
        stmt = stmt.where(LedgerTransaction.account_id == account_id)
    return [row_to_transaction(r) for r in session.execute(stmt).scalars()]


def soft_delete(session: Session, row_ids: Sequence[int]) -> None:
    """Mark rows as deleted; they disappear from candidate pools and scans."""

    for row_id in row_ids:
        row = session.get(LedgerTransaction, row_id)
        if row is not None:
            row.is_deleted = True
            row.updated_at = func.now()
    session.flush()


__all__ = [
    "compute_fingerprint",
    "get_transaction",
    "load_candidates",
    "load_range",
    "row_to_transaction",
    "soft_delete",
    "upsert_transactions",
]
