"""
Answer Extractor
================
Reads a separately numbered answer-key document.

Every layout template independently collects ``(number, token)`` pairs;
the template that recovers the most distinct question numbers becomes the
sole source for the document. Templates are never merged, and ties go to
the template listed first.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Sequence

from .config import ExtractorConfig
from .glyphs import TOKEN_CLASS, normalize_answer
from .models import AnswerSheet
from .normalizer import Profile, normalize

logger = logging.getLogger(__name__)

TOKEN = f"({TOKEN_CLASS})"
NUMBER = r"(\d{1,4})"


@dataclass(frozen=True)
class AnswerTemplate:
    """
    A named "number next to answer token" layout.

    Either ``pattern`` (two groups: number, token) or ``scanner`` (yields
    raw ``(number, token)`` string pairs) must be set.
    """
    name: str
    pattern: Optional[re.Pattern] = None
    scanner: Optional[Callable[[str], Iterable[tuple[str, str]]]] = None

    def pairs(self, text: str) -> Iterable[tuple[str, str]]:
        if self.scanner is not None:
            return self.scanner(text)
        return (
            (m.group(1), m.group(2)) for m in self.pattern.finditer(text)
        )

    def scan(
        self, text: str, number_range: tuple[int, int] = (1, 1000)
    ) -> dict[int, str]:
        """Collect answers; a later pair for the same number overwrites."""
        low, high = number_range
        answers: dict[int, str] = {}
        for raw_number, raw_token in self.pairs(text):
            number = int(raw_number)
            token = normalize_answer(raw_token)
            if token is None or not low <= number <= high:
                continue
            answers[number] = token
        return answers


def _line_pairs(text: str) -> Iterator[tuple[str, str]]:
    """A line holding only a number, then a line holding only a token."""
    number_line = re.compile(r"^" + NUMBER + r"[.．]?$")
    token_line = re.compile(r"^" + TOKEN + r"[.．]?$")
    lines = [line.strip() for line in text.split("\n") if line.strip()]

    index = 0
    while index < len(lines) - 1:
        number = number_line.match(lines[index])
        token = token_line.match(lines[index + 1])
        if number and token:
            yield number.group(1), token.group(1)
            index += 2
        else:
            index += 1


def _template(name: str, source: str, flags: int = 0) -> AnswerTemplate:
    return AnswerTemplate(name, pattern=re.compile(source, flags))


ANSWER_TEMPLATES: tuple[AnswerTemplate, ...] = (
    # "問1 答え：3", "Q12 Answer: b"
    _template(
        "inline_labeled",
        r"(?:問題?|第|Question|Problem|Q|No\.?)\s*" + NUMBER
        + r"\s*問?[\s.．:：)）]*(?:答え|解答|正解|正答|Answer|Ans)[\s.．:：]*"
        + TOKEN + r"(?!\w)",
        re.IGNORECASE,
    ),
    # "12. 3"
    _template("dot", r"(?<![\d.．])" + NUMBER + r"\s*[.．]\s*" + TOKEN + r"(?!\w)"),
    # "12) 3"
    _template("paren", r"(?<![\d(（])" + NUMBER + r"\s*[)）]\s*" + TOKEN + r"(?!\w)"),
    # "12-3", "12 → c", "12: c"
    _template("dash", r"(?<!\d)" + NUMBER + r"\s*[-－–—→:：=]\s*" + TOKEN + r"(?!\w)"),
    # "[12] 3", "【12】3"
    _template("bracketed", r"[\[［【]\s*" + NUMBER + r"\s*[\]］】]\s*" + TOKEN + r"(?!\w)"),
    # "(12) 3"
    _template("parenthesized", r"[(（]\s*" + NUMBER + r"\s*[)）]\s*" + TOKEN + r"(?!\w)"),
    # "12<TAB>3"
    _template("tab", r"(?<!\d)" + NUMBER + r"\t+" + TOKEN + r"(?!\w)"),
    # "12 | 3"
    _template("pipe", r"(?<!\d)" + NUMBER + r"\s*[|｜│]\s*" + TOKEN + r"(?!\w)"),
    # "12 ...... 3"
    _template("dot_leader", r"(?<!\d)" + NUMBER + r"\s*(?:[.．・…]\s*){2,}" + TOKEN + r"(?!\w)"),
    # "12 3"
    _template("spaced", r"(?<![\d.．])" + NUMBER + r"[ \u3000]+" + TOKEN + r"(?!\w)"),
    AnswerTemplate("line_pair", scanner=_line_pairs),
)


def select_best(
    results: Sequence[tuple[AnswerTemplate, dict[int, str]]],
) -> Optional[tuple[AnswerTemplate, dict[int, str]]]:
    """
    Pick the template result covering the most distinct question numbers.
    Earlier entries win ties; empty results never win.
    """
    best = None
    for template, answers in results:
        if not answers:
            continue
        if best is None or len(answers) > len(best[1]):
            best = (template, answers)
    return best


class AnswerKeyExtractor:
    """Runs every answer template over a document and keeps the best one."""

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        templates: Sequence[AnswerTemplate] = ANSWER_TEMPLATES,
    ):
        self.config = config or ExtractorConfig()
        self.templates = tuple(templates)

    def extract(self, text: str) -> AnswerSheet:
        """
        Parse answer-document text into an ``AnswerSheet``.

        Returns an empty sheet (never raises) when the text is too short or
        no template recognizes anything.
        """
        if text is None:
            raise TypeError("extract() requires text, got None")

        normalized = normalize(text, Profile.LINES)
        if len(normalized.strip()) < self.config.min_answer_text_chars:
            logger.warning(
                f"Answer text too short ({len(normalized.strip())} chars)"
            )
            return AnswerSheet()

        results = [
            (template, template.scan(normalized, self.config.answer_number_range))
            for template in self.templates
        ]
        scores = {template.name: len(answers) for template, answers in results}

        for name, score in scores.items():
            logger.debug(f"Answer template {name}: {score} answers")

        best = select_best(results)
        if best is None:
            logger.warning("No answer template matched the answer document")
            return AnswerSheet(template_scores=scores)

        template, answers = best
        logger.info(
            f"Answer template '{template.name}' selected: "
            f"{len(answers)} answers"
        )
        return AnswerSheet(
            answers=dict(sorted(answers.items())),
            template=template.name,
            template_scores=scores,
        )
