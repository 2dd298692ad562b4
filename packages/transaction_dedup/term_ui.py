"""Tiny terminal UI helpers (prompt_toolkit-based) for reviewing duplicates.

Kept separate from the review workflow so the prompt can be driven from tests
with a pipe input.
"""

from __future__ import annotations

from typing import Literal

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.validation import ValidationError, Validator

from .models import DuplicatePair, Transaction

type Decision = Literal["original", "duplicate", "reject", "skip"]

# Accepted answers; single-letter shortcuts map onto the full word.
_CHOICES: dict[str, Decision] = {
    "original": "original",
    "o": "original",
    "duplicate": "duplicate",
    "d": "duplicate",
    "reject": "reject",
    "r": "reject",
    "skip": "skip",
    "s": "skip",
}


class _ChoiceValidator(Validator):
    def validate(self, document) -> None:
        text = document.text.strip().lower()
        if text and text not in _CHOICES:
            raise ValidationError(
                message="Answer original/duplicate (keep that row), reject, or skip",
                cursor_position=len(document.text),
            )


def _describe(label: str, txn: Transaction) -> str:
    provider = f" provider={txn.provider_transaction_id}" if txn.provider_transaction_id else ""
    return (
        f"  {label:<9} #{txn.id or '?'} {txn.date.isoformat()} {txn.amount:>10} "
        f"[{txn.account_id or '-'}] {txn.description}{provider}"
    )


def format_pair(pair: DuplicatePair) -> str:
    """Render ``pair`` as a short multi-line block for the terminal."""

    return "\n".join(
        [
            f"Possible duplicate (score {pair.score}: {', '.join(pair.reasons)})",
            _describe("original", pair.original),
            _describe("duplicate", pair.duplicate),
        ]
    )


def prompt_match_decision(
    pair: DuplicatePair,
    *,
    message: str = "Keep [o]riginal / [d]uplicate, [r]eject, or [s]kip (Enter skips): ",
    session: PromptSession | None = None,
) -> Decision:
    """Ask the user how to resolve ``pair``.

    Returns ``"original"`` or ``"duplicate"`` (the row to keep when merging),
    ``"reject"`` (not duplicates) or ``"skip"`` (decide later). An empty
    answer means ``"skip"``.
    """

    sess = session or PromptSession()
    completer = WordCompleter(["original", "duplicate", "reject", "skip"], ignore_case=True)
    print(format_pair(pair))
    answer = sess.prompt(
        message,
        completer=completer,
        validator=_ChoiceValidator(),
        validate_while_typing=False,
    )
    text = answer.strip().lower()
    if not text:
        return "skip"
    return _CHOICES[text]


__all__ = ["Decision", "format_pair", "prompt_match_decision"]
