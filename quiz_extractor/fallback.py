"""
Inline-Paragraph Fallback Parser
================================
Last-resort strategy for pages whose line structure was lost (everything
run together into one paragraph). Used only when the line segmenter finds
no questions at all.

Per page, a candidate is a question number followed by a stem containing
an interrogative keyword and then five sequential choice tokens (values
1-5 in one glyph family). Candidates that cannot produce all five tokens
are abandoned and scanning resumes one character later; partial questions
are never emitted.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .config import ExtractorConfig
from .glyphs import glyph_for
from .models import CHOICE_KEYS
from .normalizer import Profile, normalize, split_pages

logger = logging.getLogger(__name__)

QUESTION_NUMBER_PATTERN = re.compile(
    r"(?:問題?|第|Q|No\.?)?\s*(?<![\d.．])(\d{1,4})(?!\d)\s*問?\s*[.．)）:：、]?\s*",
    re.IGNORECASE,
)

# A following question: labeled number, or a number with its separator
NEXT_QUESTION_PATTERN = re.compile(
    r"(?:(?<![A-Za-z])(?:問題?|第|Q|No\.?)\s*\d{1,4}(?!\d)\s*問?"
    r"|(?<![\d.．])\d{1,4}(?!\d)\s*[.．)）:：、])",
    re.IGNORECASE,
)

# Families usable as inline choice markers and the separator each needs
_CHOICE_FAMILIES = (
    "digit", "fullwidth_digit", "circled", "lower", "upper", "katakana",
)


def _token_pattern(family: str, position: int) -> re.Pattern:
    glyph = re.escape(glyph_for(family, position))
    if family == "circled":
        return re.compile(glyph + r"\s*[.．:：]?\s*")
    if family in ("lower", "upper"):
        return re.compile(
            r"(?<![A-Za-z])(?:[(（]" + glyph + r"[)）]|" + glyph
            + r"\s*[.．)）:：])\s*"
        )
    return re.compile(
        r"(?<![\d])(?:[(（]" + glyph + r"[)）]|" + glyph
        + r"\s*[.．)）:：、](?!\d))\s*"
    )


TOKEN_PATTERNS: dict[str, list[re.Pattern]] = {
    family: [_token_pattern(family, position) for position in range(1, 6)]
    for family in _CHOICE_FAMILIES
}


@dataclass(frozen=True)
class InlineQuestion:
    number: int
    text: str
    choices: dict[str, str]
    page: int
    end: int


class InlineFallbackParser:
    """Whole-page question finder for whitespace-collapsed text."""

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()
        keywords = "|".join(
            re.escape(k) for k in self.config.interrogative_keywords
        )
        self._keyword = re.compile(f"(?:{keywords})", re.IGNORECASE)

    def parse(self, text: str) -> list[InlineQuestion]:
        """Scan every page of ``text`` for inline questions."""
        questions: list[InlineQuestion] = []
        pages = split_pages(text, self.config.page_marker_pattern)

        for page_number, page in enumerate(pages, start=1):
            collapsed = normalize(page, Profile.COLLAPSED)
            found = list(self._scan_page(collapsed, page_number))
            logger.debug(f"Fallback page {page_number}: {len(found)} questions")
            questions.extend(found)

        logger.info(f"Fallback parser found {len(questions)} questions")
        return questions

    def _scan_page(self, text: str, page: int) -> Iterator[InlineQuestion]:
        pos = 0
        while True:
            match = QUESTION_NUMBER_PATTERN.search(text, pos)
            if match is None:
                return
            question = self._try_candidate(text, match, page)
            if question is None:
                pos = match.start() + 1
                continue
            yield question
            pos = question.end

    def _try_candidate(
        self, text: str, match: re.Match, page: int
    ) -> Optional[InlineQuestion]:
        number = int(match.group(1))
        if number <= 0:
            return None

        stem_start = match.end()
        first = self._first_token(text, stem_start)
        if first is None:
            return None
        family, token = first

        stem = text[stem_start:token.start()].strip()
        if not stem or not self._keyword.search(stem):
            return None

        bounds = [token]
        for position in range(2, 6):
            previous = bounds[-1]
            limit = previous.end() + self.config.fallback_max_choice_chars
            nxt = TOKEN_PATTERNS[family][position - 1].search(
                text, previous.end(), limit
            )
            if nxt is None:
                return None
            bounds.append(nxt)

        end = self._next_question_start(text, bounds[-1].end())
        choices: dict[str, str] = {}
        for index, token_match in enumerate(bounds):
            stop = bounds[index + 1].start() if index < 4 else end
            content = text[token_match.end():stop].strip()
            if not content:
                return None
            choices[CHOICE_KEYS[index]] = content

        return InlineQuestion(
            number=number, text=stem, choices=choices, page=page, end=end
        )

    def _first_token(
        self, text: str, start: int
    ) -> Optional[tuple[str, re.Match]]:
        """Earliest first-choice token after ``start`` in any family."""
        limit = start + self.config.fallback_max_stem_chars
        best: Optional[tuple[str, re.Match]] = None
        for family in _CHOICE_FAMILIES:
            found = TOKEN_PATTERNS[family][0].search(text, start, limit)
            if found and (best is None or found.start() < best[1].start()):
                best = (family, found)
        return best

    def _next_question_start(self, text: str, start: int) -> int:
        """Position of the next number that opens a keyword-bearing stem."""
        for match in NEXT_QUESTION_PATTERN.finditer(text, start):
            first = self._first_token(text, match.end())
            if first is None:
                continue
            stem = text[match.end():first[1].start()]
            if stem.strip() and self._keyword.search(stem):
                return match.start()
        return len(text)
