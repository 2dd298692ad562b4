"""Levenshtein-based string similarity for transaction descriptions.

The comparison is exact on whatever strings it receives; callers lower-case
descriptions first when they want case-insensitive matching.
"""

from __future__ import annotations


def levenshtein_distance(a: str, b: str) -> int:
    """Return the edit distance between ``a`` and ``b``.

    Uses the full ``(len(a) + 1) x (len(b) + 1)`` dynamic-programming matrix.
    Row 0 and column 0 hold their index; every other cell is the minimum of a
    deletion, an insertion, or a substitution (cost 0 when the characters
    match).
    """

    n, m = len(a), len(b)
    matrix = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n + 1):
        matrix[i][0] = i
    for j in range(m + 1):
        matrix[0][j] = j

    for i in range(1, n + 1):
        ca = a[i - 1]
        for j in range(1, m + 1):
            cost = 0 if ca == b[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,  # deletion
                matrix[i][j - 1] + 1,  # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )
    return matrix[n][m]


def similarity(a: str, b: str) -> float:
    """Return normalized similarity in ``[0, 1]``.

    ``(max_len - distance) / max_len``. Two empty strings are identical
    (``1.0``); exactly one empty string scores ``0.0``.
    """

    if not a:
        return 1.0 if not b else 0.0
    if not b:
        return 0.0
    max_len = max(len(a), len(b))
    return (max_len - levenshtein_distance(a, b)) / max_len


__all__ = ["levenshtein_distance", "similarity"]
