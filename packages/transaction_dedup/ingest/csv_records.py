"""Load transactions from a generic CSV export.

Expected header (exact keys; order does not matter):
``id, amount, description, date, account_id, provider_transaction_id``

``amount`` and ``date`` are required per row; the other columns may be
missing or empty. ``date`` is an ISO-8601 date or timestamp (``2024-01-15``,
``2024-01-15T10:30:00Z``). camelCase ``accountId``/``providerTransactionId``
headers are accepted as well.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator, Mapping
from os import PathLike
from pathlib import Path

from ..models import InvalidTransactionRecord, Transaction

REQUIRED_HEADERS: frozenset[str] = frozenset({"amount", "date"})


def to_transactions(rows: Iterable[Mapping[str, str]]) -> Iterator[Transaction]:
    """Convert CSV rows to transactions, naming the failing row on error."""

    # Data rows start on line 2 (line 1 is the header).
    for line_no, row in enumerate(rows, start=2):
        try:
            yield Transaction.from_record(row)
        except InvalidTransactionRecord as e:
            raise InvalidTransactionRecord(e.field, f"line {line_no}: {e.message}") from e


def load_transactions_csv(csv_path: str | PathLike[str]) -> list[Transaction]:
    """Read ``csv_path`` and return its transactions in file order.

    Raises ``csv.Error`` when the header is missing or lacks a required column
    and :class:`~transaction_dedup.models.InvalidTransactionRecord` for a
    malformed row.
    """

    p = Path(csv_path)
    with p.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        headers = set(reader.fieldnames or [])
        if not headers:
            raise csv.Error(f"CSV appears to have no header row: {csv_path}")
        missing = sorted(REQUIRED_HEADERS - headers)
        if missing:
            raise csv.Error("CSV header mismatch. Missing columns: " + ", ".join(missing))
        return list(to_transactions(reader))


__all__ = ["REQUIRED_HEADERS", "load_transactions_csv", "to_transactions"]
