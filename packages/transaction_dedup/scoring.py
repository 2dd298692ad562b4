"""Weighted multi-criteria duplicate scoring.

Public surface:
- ``score_pair``: additive score and fired reasons for one (new, existing)
  pair.
- ``detect_duplicates``: every candidate from a pool whose score clears the
  duplicate threshold, in pool order.

Scores are additive rather than probabilistic so a flagged duplicate can be
explained to the end user from its ``reasons``. Both functions are pure:
they read their inputs, allocate local state only, and never mutate the
records they are given.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .logging_setup import get_logger
from .models import (
    DATE_PROXIMITY,
    DESCRIPTION_SIMILARITY,
    EXACT_AMOUNT,
    PROVIDER_ID_MATCH,
    SAME_ACCOUNT,
    DuplicateMatch,
    PairScore,
    Transaction,
    as_transaction,
)
from .settings import DEFAULT_SETTINGS, DeduplicationSettings
from .similarity import similarity

logger = get_logger("transaction_dedup.scoring")


def _amounts_match(new: Transaction, existing: Transaction, settings: DeduplicationSettings) -> bool:
    a, b = new.amount, existing.amount
    if settings.amount_sign == "absolute":
        a, b = abs(a), abs(b)
    return abs(a - b) <= settings.amount_tolerance


def score_pair(
    new: Transaction,
    existing: Transaction,
    settings: DeduplicationSettings | None = None,
) -> PairScore:
    """Score how likely ``existing`` records the same movement as ``new``.

    Rules are independent and additive; several can fire for one pair:

    - amounts within ``amount_tolerance`` -> ``exact_amount``
    - timestamps within ``date_window`` -> ``date_proximity``
    - lower-cased description similarity above ``description_threshold``
      -> ``description_similarity``
    - same non-empty ``account_id`` -> ``same_account``
    - both carry the same provider transaction id -> ``provider_id_match``

    A missing provider id on either side leaves that rule unfired. Likewise
    ``same_account`` needs an account id on both sides: two transactions
    without one do not count as sharing an account.
    """

    cfg = settings or DEFAULT_SETTINGS
    weights = cfg.weights
    enabled = cfg.enabled
    score = 0
    reasons: list[str] = []

    if enabled.amount and _amounts_match(new, existing, cfg):
        score += weights.amount
        reasons.append(EXACT_AMOUNT)

    if enabled.date and abs(new.date - existing.date) <= cfg.date_window:
        score += weights.date
        reasons.append(DATE_PROXIMITY)

    if enabled.description:
        sim = similarity(new.description.lower(), existing.description.lower())
        if sim > cfg.description_threshold:
            score += weights.description
            reasons.append(DESCRIPTION_SIMILARITY)

    if enabled.account and new.account_id is not None and new.account_id == existing.account_id:
        score += weights.account
        reasons.append(SAME_ACCOUNT)

    if (
        enabled.provider_id
        and new.provider_transaction_id
        and existing.provider_transaction_id
        and new.provider_transaction_id == existing.provider_transaction_id
    ):
        score += weights.provider_id
        reasons.append(PROVIDER_ID_MATCH)

    return PairScore(score=score, reasons=tuple(reasons))


def is_duplicate(pair_score: PairScore, settings: DeduplicationSettings | None = None) -> bool:
    """Return whether ``pair_score`` meets the duplicate threshold."""

    cfg = settings or DEFAULT_SETTINGS
    return pair_score.score >= cfg.duplicate_threshold


def detect_duplicates(
    new: Transaction | Mapping[str, Any],
    candidates: Iterable[Transaction | Mapping[str, Any]],
    settings: DeduplicationSettings | None = None,
) -> list[DuplicateMatch]:
    """Return candidates whose score against ``new`` clears the threshold.

    Every input is validated before any scoring happens, so a malformed
    record raises :class:`~transaction_dedup.models.InvalidTransactionRecord`
    and no partial result is produced. Matches keep the candidates' input
    order; they are not re-sorted by score.

    Candidate pools are expected to be prefiltered by the caller (for example
    a date-window query); cost is linear in the pool size times the
    description comparison.
    """

    if candidates is None:
        raise TypeError("candidates must be an iterable of transactions, not None")
    cfg = settings or DEFAULT_SETTINGS
    new_txn = as_transaction(new)
    pool = [as_transaction(c) for c in candidates]

    matches: list[DuplicateMatch] = []
    for candidate in pool:
        result = score_pair(new_txn, candidate, cfg)
        if is_duplicate(result, cfg):
            logger.debug(
                "duplicate candidate id=%s score=%d reasons=%s",
                candidate.id,
                result.score,
                ",".join(result.reasons),
            )
            matches.append(
                DuplicateMatch(candidate=candidate, score=result.score, reasons=result.reasons)
            )
    return matches


__all__ = ["detect_duplicates", "is_duplicate", "score_pair"]
