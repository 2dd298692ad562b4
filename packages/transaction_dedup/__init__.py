"""Public interface for the ``transaction_dedup`` package.

This module re-exports the pure scoring API and its models/settings as the
stable import surface. Database-backed workflows live in
``transaction_dedup.api`` and are imported from there explicitly so that the
scorer stays usable without a database driver configured.
"""

from .models import (
    DATE_PROXIMITY,
    DESCRIPTION_SIMILARITY,
    EXACT_AMOUNT,
    PROVIDER_ID_MATCH,
    REASONS,
    SAME_ACCOUNT,
    DuplicateMatch,
    DuplicatePair,
    InvalidTransactionRecord,
    PairScore,
    Transaction,
)
from .scan import ScanResult, candidate_window, find_duplicate_pairs, summarize
from .scoring import detect_duplicates, is_duplicate, score_pair
from .settings import CriteriaWeights, DeduplicationSettings, EnabledCriteria
from .similarity import levenshtein_distance, similarity

__all__ = [
    # Scoring API
    "similarity",
    "levenshtein_distance",
    "score_pair",
    "is_duplicate",
    "detect_duplicates",
    "find_duplicate_pairs",
    "summarize",
    "candidate_window",
    # Models
    "Transaction",
    "InvalidTransactionRecord",
    "PairScore",
    "DuplicateMatch",
    "DuplicatePair",
    "ScanResult",
    # Reason tags
    "REASONS",
    "EXACT_AMOUNT",
    "DATE_PROXIMITY",
    "DESCRIPTION_SIMILARITY",
    "SAME_ACCOUNT",
    "PROVIDER_ID_MATCH",
    # Settings
    "DeduplicationSettings",
    "CriteriaWeights",
    "EnabledCriteria",
]
