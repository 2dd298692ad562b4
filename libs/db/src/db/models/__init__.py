"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``transaction_dedup``.
"""

from .ledger import Base, LedgerTransaction, MatchDecision

__all__ = [
    "Base",
    "LedgerTransaction",
    "MatchDecision",
]
