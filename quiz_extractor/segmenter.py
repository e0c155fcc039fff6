"""
Question Segmenter
==================
Deterministic line-scanning state machine that groups normalized lines of
a question document into question blocks (stem + labeled choices).

Scan state lives in a per-call object, so one segmenter instance can be
shared between threads.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from .config import ExtractorConfig
from .detectors import (
    ANSWER_RULES,
    CHOICE_RULES,
    QUESTION_START_RULES,
    ChoiceMatch,
    DetectorRule,
    QuestionStart,
    StartKind,
    detect_answer,
    detect_choice,
    detect_question_start,
)
from .glyphs import glyph_family, ordinal
from .models import MAX_CHOICES
from .normalizer import Profile, normalize

logger = logging.getLogger(__name__)

# Headers, footers and page counters
NOISE_PATTERNS = [
    re.compile(r"^(Page\s*)?\d+\s*(/|of)\s*\d+$", re.IGNORECASE),
    re.compile(r"^-\s*\d+\s*-$"),
    re.compile(r"^https?://\S+$"),
]

# An enumerated line phrased like this starts a question, never a choice
STEM_ENDINGS = ("?", "？", "か。", "か？")
STEM_CUES = ("どれか", "いずれか", "どちらか", "選べ", "which of the following")


class SegmenterState(Enum):
    SCANNING = "SCANNING"
    IN_QUESTION = "IN_QUESTION"
    IN_CHOICES = "IN_CHOICES"


@dataclass
class QuestionBlock:
    """Lines belonging to one question, before choice validation."""
    number: int
    stem_parts: list[str] = field(default_factory=list)
    choice_parts: dict[str, list[str]] = field(default_factory=dict)
    choice_family: Optional[str] = None
    choice_separator: Optional[str] = None
    inline_answer: Optional[str] = None
    page: int = 1

    @property
    def stem(self) -> str:
        return " ".join(self.stem_parts).strip()

    @property
    def last_key(self) -> Optional[str]:
        return next(reversed(self.choice_parts), None)


@dataclass
class _Scan:
    state: SegmenterState = SegmenterState.SCANNING
    current: Optional[QuestionBlock] = None
    pending_number: Optional[int] = None
    page: int = 1
    page_has_content: bool = False
    blocks: list[QuestionBlock] = field(default_factory=list)


class QuestionSegmenter:
    """
    Finite state machine (SCANNING -> IN_QUESTION -> IN_CHOICES) driven by
    tables of detector rules.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        question_rules: Sequence[DetectorRule] = QUESTION_START_RULES,
        choice_rules: Sequence[DetectorRule] = CHOICE_RULES,
        answer_rules: Sequence[DetectorRule] = ANSWER_RULES,
    ):
        self.config = config or ExtractorConfig()
        self.question_rules = tuple(question_rules)
        self.choice_rules = tuple(choice_rules)
        self.answer_rules = tuple(answer_rules)
        self._page_marker = re.compile(
            self.config.page_marker_pattern, re.IGNORECASE
        )

    def segment(self, text: str) -> list[QuestionBlock]:
        """Split question-document text into question blocks."""
        scan = _Scan()

        for line in normalize(text, Profile.LINES).split("\n"):
            if not line:
                continue
            self._process_line(scan, line)

        self._flush(scan)
        logger.info(f"Segmented {len(scan.blocks)} question blocks")
        return scan.blocks

    def _process_line(self, scan: _Scan, line: str):
        if self._page_marker.match(line):
            if scan.page_has_content:
                scan.page += 1
                scan.page_has_content = False
            return
        scan.page_has_content = True

        if any(p.match(line) for p in NOISE_PATTERNS):
            return

        start = detect_question_start(
            line, self.config.generic_min_remainder, self.question_rules
        )
        if start and start.kind is StartKind.LABELED:
            self._start_question(scan, start)
            return

        block = scan.current

        if block is not None:
            answer = detect_answer(line, self.answer_rules)
            if answer:
                logger.debug(
                    f"Q{block.number}: inline answer {answer.key} "
                    f"({answer.rule})"
                )
                block.inline_answer = answer.key
                return

        choice = detect_choice(line, self.choice_rules)

        if start:
            if choice and self._expects_choice(block, choice) \
                    and not self._reads_as_stem(start.remainder):
                self._add_choice(scan, choice)
            else:
                self._start_question(scan, start)
            return

        if choice:
            if block is not None:
                self._add_choice(scan, choice)
            else:
                logger.debug(f"Ignoring choice outside a question: {line[:40]}")
            return

        self._append_text(scan, line)

    def _expects_choice(
        self, block: Optional[QuestionBlock], choice: ChoiceMatch
    ) -> bool:
        """
        An enumerated line ("2. ...", "(3) ...") is read as a choice when it
        continues the open question's choice sequence with the same glyph
        family and marker punctuation ("1." and "1)" are different markers).
        """
        if block is None or not block.stem_parts:
            return False
        count = len(block.choice_parts)
        if count >= MAX_CHOICES:
            return False
        if block.choice_family and \
                glyph_family(choice.glyph) != block.choice_family:
            return False
        if block.choice_separator is not None and \
                choice.separator != block.choice_separator:
            return False
        return ordinal(choice.key) == count + 1

    @staticmethod
    def _reads_as_stem(text: str) -> bool:
        """True when text is phrased as a question rather than an option."""
        if text.endswith(STEM_ENDINGS):
            return True
        lowered = text.lower()
        return any(cue in lowered for cue in STEM_CUES)

    def _start_question(self, scan: _Scan, start: QuestionStart):
        """Finalize the open question and begin the next one."""
        self._flush(scan)

        if not start.remainder:
            logger.debug(f"Question {start.number}: waiting for stem line")
            scan.pending_number = start.number
            scan.state = SegmenterState.SCANNING
            return

        logger.debug(f"Detected question {start.number} ({start.rule})")
        scan.current = QuestionBlock(
            number=start.number,
            stem_parts=[start.remainder],
            page=scan.page,
        )
        scan.state = SegmenterState.IN_QUESTION

    def _add_choice(self, scan: _Scan, choice: ChoiceMatch):
        block = scan.current
        if not block.stem_parts:
            logger.debug(f"Q{block.number}: choice before stem ignored")
            return
        if block.choice_family is None:
            block.choice_family = glyph_family(choice.glyph)
            block.choice_separator = choice.separator
        # last write wins on a repeated key
        block.choice_parts[choice.key] = [choice.text]
        scan.state = SegmenterState.IN_CHOICES

    def _append_text(self, scan: _Scan, text: str):
        """Append an unmatched line to the active part of the open question."""
        if scan.current is None:
            if scan.pending_number is not None and \
                    len(text) >= self.config.min_stem_chars:
                scan.current = QuestionBlock(
                    number=scan.pending_number,
                    stem_parts=[text],
                    page=scan.page,
                )
                scan.pending_number = None
                scan.state = SegmenterState.IN_QUESTION
            return

        block = scan.current

        if scan.state is SegmenterState.IN_QUESTION:
            block.stem_parts.append(text)

        elif scan.state is SegmenterState.IN_CHOICES:
            if len(block.choice_parts) < MAX_CHOICES:
                block.choice_parts[block.last_key].append(text)
            else:
                logger.debug(f"Q{block.number}: discarding trailing line")

    def _flush(self, scan: _Scan):
        block = scan.current
        scan.current = None
        scan.pending_number = None
        scan.state = SegmenterState.SCANNING

        if block is None:
            return
        if not block.stem:
            logger.debug(f"Dropping question {block.number} without text")
            return
        scan.blocks.append(block)
