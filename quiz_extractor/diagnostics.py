"""
Diagnostics
===========
Content statistics attached to a question set when extraction yields
nothing, so a reviewer can tell a bad scan from an unsupported layout.
"""

from __future__ import annotations

import re

from .category import count_category_keywords
from .config import ExtractorConfig
from .models import TextDiagnostics
from .normalizer import split_pages

CHOICE_MARKER_PATTERN = re.compile(
    r"(?:^|\s)(?:[1-5１-５a-eA-Eアイウエオ]\s*[.．)）]|[①②③④⑤]|[(（][1-5a-eA-E][)）])"
)
QUESTION_MARKER_PATTERN = re.compile(
    r"(?:問題?|第|Question|Problem|Q|No\.?)\s*\d+", re.IGNORECASE
)

SAMPLE_CHARS = 500


def analyze_text(text: str, config: ExtractorConfig) -> TextDiagnostics:
    lowered = text.lower()
    return TextDiagnostics(
        char_count=len(text),
        line_count=len([line for line in text.split("\n") if line.strip()]),
        page_count=len(split_pages(text, config.page_marker_pattern)),
        digit_count=sum(1 for c in text if c.isdigit()),
        choice_marker_count=len(CHOICE_MARKER_PATTERN.findall(text)),
        question_marker_count=len(QUESTION_MARKER_PATTERN.findall(text)),
        interrogative_keyword_count=sum(
            lowered.count(keyword.lower())
            for keyword in config.interrogative_keywords
        ),
        category_keyword_count=count_category_keywords(
            text, config.categories
        ),
        sample=text[:SAMPLE_CHARS],
    )
