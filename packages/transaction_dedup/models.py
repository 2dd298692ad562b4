"""Data models for ``transaction_dedup``.

Records entering the scorer are validated at construction time so that a
malformed row fails fast at the boundary instead of silently scoring as
zero. Results are explicit typed structures returned alongside the input
records; inputs are never mutated or annotated in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple

# ---------------------------------------------------------------------------
# Reason tags
# ---------------------------------------------------------------------------

EXACT_AMOUNT = "exact_amount"
DATE_PROXIMITY = "date_proximity"
DESCRIPTION_SIMILARITY = "description_similarity"
SAME_ACCOUNT = "same_account"
PROVIDER_ID_MATCH = "provider_id_match"

# Closed set, in the order the scorer evaluates the criteria.
REASONS: tuple[str, ...] = (
    EXACT_AMOUNT,
    DATE_PROXIMITY,
    DESCRIPTION_SIMILARITY,
    SAME_ACCOUNT,
    PROVIDER_ID_MATCH,
)


class InvalidTransactionRecord(ValueError):
    """A transaction record is missing a required field or holds a bad value."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _to_amount(raw: Any) -> Decimal:
    if raw is None:
        raise InvalidTransactionRecord("amount", "is required")
    if isinstance(raw, bool):
        raise InvalidTransactionRecord("amount", f"unsupported value {raw!r}")
    if isinstance(raw, Decimal):
        d = raw
    else:
        s = str(raw).strip()
        if not s:
            raise InvalidTransactionRecord("amount", "is required")
        try:
            d = Decimal(s)
        except (InvalidOperation, ValueError) as e:
            raise InvalidTransactionRecord("amount", f"not a number: {raw!r}") from e
    if not d.is_finite():
        raise InvalidTransactionRecord("amount", f"must be finite, got {raw!r}")
    return d


def _to_datetime(raw: Any) -> datetime:
    if raw is None:
        raise InvalidTransactionRecord("date", "is required")
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        dt = datetime(raw.year, raw.month, raw.day)
    elif isinstance(raw, str):
        s = raw.strip()
        if not s:
            raise InvalidTransactionRecord("date", "is required")
        # fromisoformat() accepts a trailing "Z" on Python 3.11+
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as e:
            raise InvalidTransactionRecord("date", f"not an ISO-8601 timestamp: {raw!r}") from e
    else:
        raise InvalidTransactionRecord("date", f"unsupported type {type(raw).__name__}")
    # Naive timestamps are taken as UTC so comparisons stay in absolute time.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _opt_str(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in record:
            return record[k]
    return None


# ---------------------------------------------------------------------------
# Core record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single financial transaction used as a comparison input.

    Attributes
    ----------
    amount:
        Signed amount in currency units. Ints, floats and numeric strings are
        coerced through ``str`` so ``25.5`` becomes ``Decimal("25.5")`` rather
        than its binary float expansion.
    description:
        Free-text label. ``None`` is stored as ``""``.
    date:
        Timestamp of the movement. Always timezone-aware after construction;
        naive inputs are interpreted as UTC. Plain ``date`` values and ISO-8601
        strings are accepted.
    account_id:
        Identifier of the owning account, when known.
    provider_transaction_id:
        Identifier assigned by an external bank-data aggregator. Absent for
        manually entered transactions.
    id:
        Opaque caller identifier (e.g. a database primary key).
    """

    amount: Decimal
    description: str
    date: datetime
    account_id: str | None = None
    provider_transaction_id: str | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize through object.__setattr__.
        object.__setattr__(self, "amount", _to_amount(self.amount))
        object.__setattr__(self, "date", _to_datetime(self.date))
        desc = self.description
        object.__setattr__(self, "description", "" if desc is None else str(desc))
        object.__setattr__(self, "account_id", _opt_str(self.account_id))
        object.__setattr__(
            self, "provider_transaction_id", _opt_str(self.provider_transaction_id)
        )
        object.__setattr__(self, "id", _opt_str(self.id))

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Transaction:
        """Build a transaction from a loose mapping (CSV row, JSON object).

        Both snake_case and camelCase keys are understood for the account and
        provider identifiers.
        """

        if not isinstance(record, Mapping):
            raise InvalidTransactionRecord(
                "record", f"expected a mapping, got {type(record).__name__}"
            )
        return cls(
            amount=record.get("amount"),
            description=record.get("description"),
            date=record.get("date"),
            account_id=_first(record, "account_id", "accountId"),
            provider_transaction_id=_first(
                record, "provider_transaction_id", "providerTransactionId"
            ),
            id=record.get("id"),
        )


def as_transaction(obj: Transaction | Mapping[str, Any]) -> Transaction:
    """Return ``obj`` as a :class:`Transaction`, validating mappings."""

    if isinstance(obj, Transaction):
        return obj
    return Transaction.from_record(obj)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class PairScore(NamedTuple):
    """Additive duplicate score for one pair and the criteria that fired."""

    score: int
    reasons: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DuplicateMatch:
    """An existing transaction flagged as a likely duplicate of a new one."""

    candidate: Transaction
    score: int
    reasons: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DuplicatePair:
    """A likely-duplicate pair found while scanning a collection.

    ``original`` precedes ``duplicate`` in the scanned collection's order.
    """

    original: Transaction
    duplicate: Transaction
    score: int
    reasons: tuple[str, ...]

    @property
    def match_id(self) -> str:
        """Identifier of the pair as ``"<original id>-<duplicate id>"``."""

        if self.original.id is None or self.duplicate.id is None:
            raise ValueError("match_id requires both transactions to carry an id")
        return f"{self.original.id}-{self.duplicate.id}"


__all__ = [
    "DATE_PROXIMITY",
    "DESCRIPTION_SIMILARITY",
    "EXACT_AMOUNT",
    "PROVIDER_ID_MATCH",
    "REASONS",
    "SAME_ACCOUNT",
    "DuplicateMatch",
    "DuplicatePair",
    "InvalidTransactionRecord",
    "PairScore",
    "Transaction",
    "as_transaction",
]
