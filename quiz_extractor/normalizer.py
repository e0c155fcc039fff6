"""
Text Normalizer
===============
Canonicalizes line endings, invisible characters and whitespace variants
in recovered document text. Every function here is pure and total.
"""

from __future__ import annotations

import re
from enum import Enum

# Zero-width spaces/joiners, BOM, soft hyphen, word joiner, bidi marks
INVISIBLE_PATTERN = re.compile(
    "[\u00ad\u180e\u200b-\u200f\u202a-\u202e\u2060-\u2064\ufeff]"
)

FULLWIDTH_SPACE = "\u3000"

# Default page sentinel: "=== Page 3 ===", "--- ページ 3 ---"
PAGE_MARKER_PATTERN = r"^\s*(?:={3,}|-{3,})\s*(?:Page|ページ)\s*\d+\s*(?:={3,}|-{3,})\s*$"

_WHITESPACE_RUN = re.compile(r"\s+")


class Profile(str, Enum):
    """How whitespace is treated after canonicalization."""
    LINES = "lines"          # trim each line, keep line structure
    COLLAPSED = "collapsed"  # one space for every whitespace run


def strip_invisible(text: str) -> str:
    return INVISIBLE_PATTERN.sub("", text)


def normalize(text: str, profile: Profile = Profile.LINES) -> str:
    """
    Normalize raw document text.

    Args:
        text: Raw text from the extraction collaborator.
        profile: ``Profile.LINES`` for line-based segmentation,
            ``Profile.COLLAPSED`` for the inline-paragraph fallback.

    Returns:
        Normalized text. Applying ``normalize`` twice gives the same result.
    """
    if text is None:
        raise TypeError("normalize() requires text, got None")

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = strip_invisible(text)
    text = text.replace(FULLWIDTH_SPACE, " ")

    if Profile(profile) is Profile.COLLAPSED:
        return _WHITESPACE_RUN.sub(" ", text).strip()

    return "\n".join(line.strip() for line in text.split("\n"))


def split_pages(text: str, marker_pattern: str = PAGE_MARKER_PATTERN) -> list[str]:
    """
    Split paged text on sentinel lines.

    Text before the first sentinel counts as a page when it is not blank.
    Text without any sentinel is a single page.
    """
    marker = re.compile(marker_pattern, re.IGNORECASE)
    pages: list[str] = []
    current: list[str] = []
    seen_marker = False

    for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if marker.match(line):
            if current and (seen_marker or "".join(current).strip()):
                pages.append("\n".join(current))
            current = []
            seen_marker = True
            continue
        current.append(line)

    if current and "".join(current).strip():
        pages.append("\n".join(current))

    return pages
