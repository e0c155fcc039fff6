"""
Difficulty Estimator
====================
Rough 1-5 difficulty score for a question stem. Starts at 1 and adds one
point per length threshold passed, one if any complex-task keyword
occurs and one if any technical term occurs.
"""

from __future__ import annotations

from typing import Sequence

from .config import (
    DEFAULT_COMPLEX_KEYWORDS,
    DEFAULT_TECHNICAL_TERMS,
)

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


def estimate_difficulty(
    text: str,
    length_thresholds: Sequence[int] = (200, 400),
    complex_keywords: Sequence[str] = DEFAULT_COMPLEX_KEYWORDS,
    technical_terms: Sequence[str] = DEFAULT_TECHNICAL_TERMS,
) -> int:
    lowered = text.lower()
    difficulty = MIN_DIFFICULTY

    difficulty += sum(1 for limit in length_thresholds if len(lowered) > limit)

    if any(keyword.lower() in lowered for keyword in complex_keywords):
        difficulty += 1
    if any(term.lower() in lowered for term in technical_terms):
        difficulty += 1

    return min(MAX_DIFFICULTY, difficulty)
