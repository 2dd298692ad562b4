"""Database-backed deduplication workflows for ``transaction_dedup``.

These functions stitch the pure scorer (:mod:`transaction_dedup.scoring`,
:mod:`transaction_dedup.scan`) to the ledger tables: they fetch candidate
pools, apply automatic merges and report what needs a human decision. Every
function takes an open SQLAlchemy session; the caller commits.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import DuplicateMatch, DuplicatePair, Transaction, as_transaction
from .persistence import get_transaction, load_candidates, load_range, upsert_transactions
from .review import auto_merge, rejected_pairs
from .scan import ScanResult, find_duplicate_pairs, summarize
from .scoring import detect_duplicates
from .settings import DEFAULT_SETTINGS, DeduplicationSettings

logger = get_logger("transaction_dedup.api")


@dataclass(frozen=True, slots=True)
class IngestReport:
    """Result of :func:`ingest_transactions`.

    ``inserted`` holds the row ids written; ``skipped`` pairs each withheld
    transaction with the existing rows it duplicates.
    """

    inserted: tuple[int, ...]
    skipped: tuple[tuple[Transaction, tuple[DuplicateMatch, ...]], ...]


def detect_for_transaction(
    session: Session,
    transaction_id: int,
    settings: DeduplicationSettings | None = None,
) -> list[DuplicateMatch]:
    """Return stored duplicates of the stored transaction ``transaction_id``.

    Raises ``LookupError`` when the transaction does not exist or was merged.
    """

    cfg = settings or DEFAULT_SETTINGS
    txn = get_transaction(session, transaction_id)
    if txn is None:
        raise LookupError(f"Transaction not found: {transaction_id}")
    return detect_duplicates(txn, load_candidates(session, txn, cfg), cfg)


def detect_in_range(
    session: Session,
    start: datetime,
    end: datetime,
    settings: DeduplicationSettings | None = None,
    *,
    account_id: str | None = None,
    apply_auto_merge: bool = True,
) -> ScanResult:
    """Scan stored transactions in ``[start, end]`` for duplicate pairs.

    Pairs a reviewer already rejected are not reported again. When
    ``apply_auto_merge`` is set and the settings define an
    ``auto_merge_threshold``, qualifying pairs are merged immediately and
    returned in ``merged``; a pair whose row was already merged away earlier
    in the same pass is left alone.
    """

    cfg = settings or DEFAULT_SETTINGS
    transactions = load_range(session, start, end, account_id=account_id)
    pairs = find_duplicate_pairs(transactions, cfg, exclude=rejected_pairs(session))
    result = summarize(pairs, cfg)

    if apply_auto_merge and result.auto_merge:
        merged_away: set[str] = set()
        merged: list[DuplicatePair] = []
        for pair in result.auto_merge:
            if pair.original.id in merged_away or pair.duplicate.id in merged_away:
                logger.debug("pair %s superseded by an earlier merge", pair.match_id)
                continue
            merged_away.add(str(auto_merge(session, pair)))
            merged.append(pair)
        logger.info("auto-merged %d duplicate pairs", len(merged))
        result = replace(result, merged=tuple(merged))

    logger.info(
        "range scan %s..%s: %d found, %d pending review",
        start.isoformat(),
        end.isoformat(),
        result.duplicates_found,
        len(result.pending_review),
    )
    return result


def ingest_transactions(
    session: Session,
    transactions: Iterable[Transaction | Mapping[str, Any]],
    settings: DeduplicationSettings | None = None,
    *,
    skip_duplicates: bool = True,
) -> IngestReport:
    """Store new transactions, withholding likely duplicates of stored rows.

    Each incoming transaction is checked against the stored candidates in its
    date window before it is written, so duplicates within one batch are
    caught as well. With ``skip_duplicates=False`` everything is written and
    only the report records the duplicates.
    """

    cfg = settings or DEFAULT_SETTINGS
    incoming = [as_transaction(t) for t in transactions]

    inserted: list[int] = []
    skipped: list[tuple[Transaction, tuple[DuplicateMatch, ...]]] = []
    for txn in incoming:
        candidates = load_candidates(session, txn, cfg, stored=False)
        matches = detect_duplicates(txn, candidates, cfg)
        if matches:
            skipped.append((txn, tuple(matches)))
            if skip_duplicates:
                logger.info(
                    "skipping transaction %s: %d likely duplicate(s), best score %d",
                    txn.id or "<no id>",
                    len(matches),
                    max(m.score for m in matches),
                )
                continue
        inserted.extend(upsert_transactions(session, [txn]))

    return IngestReport(inserted=tuple(inserted), skipped=tuple(skipped))


__all__ = [
    "IngestReport",
    "detect_for_transaction",
    "detect_in_range",
    "ingest_transactions",
]
