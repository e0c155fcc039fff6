"""
Category Classifier
===================
Keyword-table topic tagging. First category with a keyword contained in
the question text wins; otherwise the default category is returned.

Latin keywords match whole words only and ignore case, so "ml" tags
"5 ml" or "10ml" but not "html". Other keywords match as substrings.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Sequence

from .config import DEFAULT_CATEGORIES, DEFAULT_CATEGORY


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> Optional[re.Pattern]:
    if not re.search(r"[A-Za-z]", keyword):
        return None
    return re.compile(
        rf"(?<![A-Za-z]){re.escape(keyword)}(?![A-Za-z])", re.IGNORECASE
    )


def count_keyword(text: str, keyword: str) -> int:
    """Occurrences of ``keyword`` in ``text`` under the matching rules above."""
    pattern = _keyword_pattern(keyword)
    if pattern is None:
        return text.count(keyword)
    return len(pattern.findall(text))


def contains_keyword(text: str, keyword: str) -> bool:
    pattern = _keyword_pattern(keyword)
    if pattern is None:
        return keyword in text
    return pattern.search(text) is not None


def classify_category(
    text: str,
    categories: Sequence[tuple[str, Sequence[str]]] = DEFAULT_CATEGORIES,
    default: str = DEFAULT_CATEGORY,
) -> str:
    for category, keywords in categories:
        if any(contains_keyword(text, keyword) for keyword in keywords):
            return category
    return default


def count_category_keywords(
    text: str,
    categories: Optional[Sequence[tuple[str, Sequence[str]]]] = None,
) -> int:
    """Number of table keywords occurring in ``text`` (diagnostics)."""
    categories = DEFAULT_CATEGORIES if categories is None else categories
    return sum(
        count_keyword(text, keyword)
        for _, keywords in categories
        for keyword in keywords
    )
