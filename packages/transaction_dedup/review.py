# ruff: noqa: I001
"""Merge decisions for detected duplicate pairs.

A detected pair is resolved in one of three ways:

- ``auto_merge``: high-confidence pairs found during a scan; the older row is
  kept and the newer one soft-deleted.
- ``approve_merge``: a reviewer confirms the pair and names the row to keep.
- ``reject_match``: a reviewer says the two rows are distinct movements; both
  are kept and the pair is not surfaced again.

Every decision is recorded in ``dd_match_decisions``. The caller is
responsible for committing.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.ledger import LedgerTransaction, MatchDecision
from .logging_setup import get_logger
from .models import DuplicatePair
from .persistence import soft_delete

logger = get_logger("transaction_dedup.review")

AUTO_MERGED = "auto_merged"
USER_APPROVED = "user_approved"
USER_REJECTED = "user_rejected"


class MatchNotFoundError(LookupError):
    """A match id references a transaction that does not exist (or was merged)."""


def parse_match_id(match_id: str) -> tuple[int, int]:
    """Split ``"<original id>-<duplicate id>"`` into two row ids."""

    parts = match_id.strip().split("-")
    if len(parts) != 2:
        raise ValueError(f"Malformed match id {match_id!r}; expected '<id>-<id>'")
    try:
        original_id, duplicate_id = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise ValueError(f"Malformed match id {match_id!r}; ids must be integers") from e
    if original_id == duplicate_id:
        raise ValueError(f"Malformed match id {match_id!r}; ids must differ")
    return original_id, duplicate_id


def _load_live_pair(
    session: Session, original_id: int, duplicate_id: int
) -> tuple[LedgerTransaction, LedgerTransaction]:
    rows = {
        r.id: r
        for r in session.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.id.in_([original_id, duplicate_id]))
            .where(LedgerTransaction.is_deleted.is_(False))
        ).scalars()
    }
    if len(rows) != 2:
        missing = sorted({original_id, duplicate_id} - set(rows))
        raise MatchNotFoundError(f"Unknown or already merged transaction ids: {missing}")
    return rows[original_id], rows[duplicate_id]


def _record(
    session: Session,
    *,
    original_id: int,
    duplicate_id: int,
    kept_id: int | None,
    action: str,
    score: int | None = None,
    reasons: tuple[str, ...] | list[str] = (),
) -> MatchDecision:
    decision = MatchDecision(
        original_id=original_id,
        duplicate_id=duplicate_id,
        kept_id=kept_id,
        score=score,
        reasons=list(reasons),
        action=action,
    )
    session.add(decision)
    session.flush()
    logger.debug(
        "recorded %s for match %d-%d (score=%s)", action, original_id, duplicate_id, score
    )
    return decision


def approve_merge(session: Session, match_id: str, keep_id: int) -> int:
    """Keep ``keep_id``, soft-delete the other row of the pair; return its id."""

    original_id, duplicate_id = parse_match_id(match_id)
    if keep_id not in (original_id, duplicate_id):
        raise ValueError(f"keep id {keep_id} is not part of match {match_id!r}")
    _load_live_pair(session, original_id, duplicate_id)

    delete_id = duplicate_id if keep_id == original_id else original_id
    soft_delete(session, [delete_id])
    _record(
        session,
        original_id=original_id,
        duplicate_id=duplicate_id,
        kept_id=keep_id,
        action=USER_APPROVED,
    )
    logger.info("approved duplicate merge %s: kept %d, deleted %d", match_id, keep_id, delete_id)
    return delete_id


def reject_match(session: Session, match_id: str) -> None:
    """Record that the pair are distinct transactions; nothing is deleted."""

    original_id, duplicate_id = parse_match_id(match_id)
    _load_live_pair(session, original_id, duplicate_id)
    _record(
        session,
        original_id=original_id,
        duplicate_id=duplicate_id,
        kept_id=None,
        action=USER_REJECTED,
    )
    logger.info("rejected duplicate match %s", match_id)


def auto_merge(session: Session, pair: DuplicatePair) -> int:
    """Merge ``pair`` keeping the older row; return the soft-deleted row id.

    "Older" means earlier ``created_at`` (first ingested); ties fall back to
    the lower row id.
    """

    original_id, duplicate_id = parse_match_id(pair.match_id)
    original, duplicate = _load_live_pair(session, original_id, duplicate_id)

    keep, drop = sorted((original, duplicate), key=lambda r: (r.created_at, r.id))
    soft_delete(session, [drop.id])
    _record(
        session,
        original_id=original_id,
        duplicate_id=duplicate_id,
        kept_id=keep.id,
        action=AUTO_MERGED,
        score=pair.score,
        reasons=pair.reasons,
    )
    logger.info("auto-merged duplicate %s: kept %d, deleted %d", pair.match_id, keep.id, drop.id)
    return drop.id


def rejected_pairs(session: Session) -> set[tuple[str, str]]:
    """Return id pairs a reviewer rejected, as strings in stored order."""

    stmt = select(MatchDecision.original_id, MatchDecision.duplicate_id).where(
        MatchDecision.action == USER_REJECTED
    )
    return {(str(a), str(b)) for a, b in session.execute(stmt).all()}


__all__ = [
    "AUTO_MERGED",
    "USER_APPROVED",
    "USER_REJECTED",
    "MatchNotFoundError",
    "approve_merge",
    "auto_merge",
    "parse_match_id",
    "reject_match",
    "rejected_pairs",
]
