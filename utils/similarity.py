"""
String and token similarity used to score catalog candidates.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein


@dataclass(frozen=True)
class TokenOverlap:
    """Shared tokens between an entry name and a candidate name."""
    count: int
    ratio: float


def levenshtein(a: Optional[str], b: Optional[str]) -> int:
    """Unit-cost insert/delete/substitute edit distance."""
    return Levenshtein.distance(a or "", b or "")


def edit_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    1 - levenshtein(a, b) / max(len(a), len(b)).

    Two empty strings are identical (1.0). Symmetric in a and b.
    """
    a = a or ""
    b = b or ""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest


def token_overlap(
    tokens_a: Optional[Sequence[str]],
    tokens_b: Optional[Sequence[str]]
) -> TokenOverlap:
    """
    Count tokens of a present in b, once per occurrence in a.

    ratio is relative to len(a), 0 when a is empty.
    """
    tokens_a = list(tokens_a or [])
    if not tokens_a:
        return TokenOverlap(count=0, ratio=0.0)

    present = set(tokens_b or [])
    count = sum(1 for token in tokens_a if token in present)
    return TokenOverlap(count=count, ratio=count / len(tokens_a))
