"""Duplicate scanning across a whole collection of transactions.

Where :func:`~transaction_dedup.scoring.detect_duplicates` checks one new
transaction against a pool, the helpers here look for duplicate pairs inside
a collection (e.g. all transactions of a user over a date range) and split
the findings into pairs that can be merged automatically and pairs that need
a human decision.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .logging_setup import get_logger
from .models import DuplicatePair, Transaction, as_transaction
from .scoring import is_duplicate, score_pair
from .settings import DEFAULT_SETTINGS, DeduplicationSettings

logger = get_logger("transaction_dedup.scan")


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of a range scan.

    ``auto_merge`` and ``pending_review`` partition ``pairs``: the former holds
    pairs at or above ``auto_merge_threshold`` (empty when auto-merging is
    disabled), the latter everything else. ``merged`` lists the ``auto_merge``
    pairs that were actually merged; a pair is left out when one of its rows
    was already merged away by an earlier pair of the same scan.
    """

    pairs: tuple[DuplicatePair, ...]
    auto_merge: tuple[DuplicatePair, ...]
    pending_review: tuple[DuplicatePair, ...]
    merged: tuple[DuplicatePair, ...] = ()

    @property
    def duplicates_found(self) -> int:
        return len(self.pairs)


def candidate_window(
    when: datetime, settings: DeduplicationSettings | None = None
) -> tuple[datetime, datetime]:
    """Return the inclusive ``(start, end)`` range worth searching around ``when``."""

    cfg = settings or DEFAULT_SETTINGS
    return when - cfg.date_window, when + cfg.date_window


def find_duplicate_pairs(
    transactions: Iterable[Transaction | Mapping[str, Any]],
    settings: DeduplicationSettings | None = None,
    *,
    exclude: set[tuple[str, str]] | None = None,
) -> list[DuplicatePair]:
    """Return every likely-duplicate pair within ``transactions``.

    Each unordered pair is scored once; the scorer is symmetric so ``(a, b)``
    and ``(b, a)`` would always agree. Records sharing the same non-null id
    are the same record and are never paired. ``exclude`` holds id pairs (in
    either order) that were already rejected by a reviewer.

    The result is sorted by score, highest first; ties keep collection order.
    """

    cfg = settings or DEFAULT_SETTINGS
    items = [as_transaction(t) for t in transactions]
    skip = exclude or set()

    pairs: list[DuplicatePair] = []
    for i, original in enumerate(items):
        for duplicate in items[i + 1 :]:
            if original.id is not None and original.id == duplicate.id:
                continue
            if original.id is not None and duplicate.id is not None:
                if (original.id, duplicate.id) in skip or (duplicate.id, original.id) in skip:
                    continue
            result = score_pair(original, duplicate, cfg)
            if not is_duplicate(result, cfg):
                continue
            pairs.append(
                DuplicatePair(
                    original=original,
                    duplicate=duplicate,
                    score=result.score,
                    reasons=result.reasons,
                )
            )

    pairs.sort(key=lambda p: p.score, reverse=True)
    logger.info("scanned %d transactions, found %d duplicate pairs", len(items), len(pairs))
    return pairs


def summarize(
    pairs: Iterable[DuplicatePair], settings: DeduplicationSettings | None = None
) -> ScanResult:
    """Split ``pairs`` into auto-merge and pending-review groups."""

    cfg = settings or DEFAULT_SETTINGS
    all_pairs = tuple(pairs)
    threshold = cfg.auto_merge_threshold
    if threshold is None:
        return ScanResult(pairs=all_pairs, auto_merge=(), pending_review=all_pairs)
    auto = tuple(p for p in all_pairs if p.score >= threshold)
    pending = tuple(p for p in all_pairs if p.score < threshold)
    return ScanResult(pairs=all_pairs, auto_merge=auto, pending_review=pending)


__all__ = ["ScanResult", "candidate_window", "find_duplicate_pairs", "summarize"]
