"""
Token Detectors
===============
Stateless single-line matchers for question starts, choice markers and
answers stated inline in a question document.

Each detector walks an ordered table of ``DetectorRule`` entries; the
first rule that matches wins, so specific labeled forms are listed before
the generic numeric fallback. Detectors return ``None`` on no match and
never raise on content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .glyphs import TOKEN_CLASS, normalize_answer


class StartKind(str, Enum):
    """How strongly a question-start match claims its line."""
    LABELED = "labeled"        # "Q1", "問1", "No. 1", "#1", "[1]"
    ENUMERATED = "enumerated"  # "1.", "(1)" - may also be a choice marker
    BARE = "bare"              # number alone on its line


@dataclass(frozen=True)
class DetectorRule:
    """One named line pattern in a detector table."""
    name: str
    pattern: re.Pattern
    kind: Optional[StartKind] = None


@dataclass(frozen=True)
class QuestionStart:
    number: int
    remainder: str
    kind: StartKind
    rule: str


@dataclass(frozen=True)
class ChoiceMatch:
    key: str
    text: str
    glyph: str
    rule: str
    separator: str = ""


@dataclass(frozen=True)
class AnswerMatch:
    key: str
    glyph: str
    rule: str


# ─── Pattern Fragments ───────────────────────────────────────────────────────

SEP = r"[.．)）:：、]"
NUM = r"(\d{1,4})(?!\d)"
CHOICE_GLYPH = "[1-5１-５a-eA-Eａ-ｅＡ-Ｅアイウエオ]"


def _rule(name: str, source: str, kind: Optional[StartKind] = None,
          flags: int = 0) -> DetectorRule:
    return DetectorRule(name, re.compile(source, flags), kind)


# ─── Question Start Rules ────────────────────────────────────────────────────

QUESTION_START_RULES: tuple[DetectorRule, ...] = (
    # "Problem 3", "Question: 12", "Question No. 4"
    _rule("problem",
          rf"^(?:problem|question)\s*(?:no\.?\s*)?[:：]?\s*{NUM}\s*(?:{SEP}\s*)?(.*)$",
          StartKind.LABELED, re.IGNORECASE),
    # "問1", "問題 12"
    _rule("mon",
          rf"^問題?\s*{NUM}\s*(?:{SEP}\s*)?(.*)$",
          StartKind.LABELED),
    # "第3問"
    _rule("dai",
          rf"^第\s*{NUM}\s*問\s*(?:{SEP}\s*)?(.*)$",
          StartKind.LABELED),
    # "Q1", "Q.12", "Q 3:"
    _rule("q",
          rf"^Q\s*\.?\s*{NUM}\s*(?:{SEP}\s*)?(.*)$",
          StartKind.LABELED, re.IGNORECASE),
    # "No. 5", "No 5"
    _rule("no",
          rf"^No\s*\.?\s*{NUM}\s*(?:{SEP}\s*)?(.*)$",
          StartKind.LABELED, re.IGNORECASE),
    # "#7"
    _rule("hash",
          rf"^[#＃]\s*{NUM}\s*(?:{SEP}\s*)?(.*)$",
          StartKind.LABELED),
    # "[8]", "【8】"
    _rule("bracketed",
          r"^[\[［【]\s*(\d{1,4})\s*[\]］】]\s*(?:" + SEP + r"\s*)?(.*)$",
          StartKind.LABELED),
    # "(9)" - shares its shape with parenthesized choices
    _rule("parenthesized",
          r"^[(（]\s*(\d{1,4})\s*[)）]\s*(?:" + SEP + r"\s*)?(.*)$",
          StartKind.ENUMERATED),
    # "10. stem text"; "1.5 mg" is not a question number
    _rule("generic",
          r"^(\d{1,4})\s*(?:[.．](?!\d)|[)）:：、])\s*(.+)$",
          StartKind.ENUMERATED),
    # "11" alone; the stem follows on the next line
    _rule("bare",
          r"^(\d{1,4})\s*[.．]?$",
          StartKind.BARE),
)


# ─── Choice Rules ────────────────────────────────────────────────────────────

CHOICE_RULES: tuple[DetectorRule, ...] = (
    _rule("parenthesized",
          rf"^[(（]\s*({CHOICE_GLYPH})\s*[)）]\s*[.．:：]?\s*(.+)$"),
    _rule("circled",
          rf"^([①②③④⑤])\s*(?:{SEP}\s*)?(.+)$"),
    _rule("digit",
          r"^([1-5１-５])\s*(?:[.．](?!\d)|[)）:：、])\s*(.+)$"),
    # "e.g." and "i.e." are not choice markers
    _rule("latin",
          r"^([a-eA-Eａ-ｅＡ-Ｅ])\s*" + SEP + r"(?![a-zA-Z]\.)\s*(.+)$"),
    _rule("katakana",
          r"^([アイウエオ])\s*(?:[.．)）:：、]|\s)\s*(.+)$"),
)


# ─── Inline Answer Rules ─────────────────────────────────────────────────────

ANSWER_RULES: tuple[DetectorRule, ...] = (
    # "Answer: B", "Correct answer is: 3", "Ans. ②"
    _rule("labeled",
          rf"^(?:correct\s+)?(?:answer|ans|key)\s*(?:is\s*)?[.:：=]\s*"
          rf"[(（]?({TOKEN_CLASS})[)）]?(?!\w)",
          flags=re.IGNORECASE),
    # "Answer B", "The answer is 4"
    _rule("phrase",
          rf"^(?:the\s+)?(?:correct\s+)?(?:answer|ans)\s+(?:is\s+)?"
          rf"[(（]?({TOKEN_CLASS})[)）]?[.．]?\s*$",
          flags=re.IGNORECASE),
    # "答え：1", "正解は③"
    _rule("japanese",
          rf"(?:答え|解答|正解|正答)\s*(?:は|が)?\s*[:：]?\s*"
          rf"[(（]?({TOKEN_CLASS})[)）]?(?!\w)"),
    # "1が正解", "③番が正答"; the line must end there
    _rule("japanese_suffix",
          rf"^[(（]?({TOKEN_CLASS})[)）]?\s*(?:番\s*)?(?:が|は)?\s*(?:正解|正答|答え)"
          r"\s*(?:です)?\s*[。.．!！]?\s*$"),
    # "B is correct", "(2) is the correct answer"
    _rule("is_correct",
          rf"^[(（]?({TOKEN_CLASS})[)）]?\s+is\s+(?:the\s+)?correct\b",
          flags=re.IGNORECASE),
)


# ─── Detectors ───────────────────────────────────────────────────────────────

_SEPARATOR_WIDTH = str.maketrans("．）（：、", ".)(:,")


def _separator(line: str, match: re.Match) -> str:
    """Punctuation around a choice glyph: ".", ")", "()", or "" for none."""
    before = line[:match.start(1)].strip()
    after = line[match.end(1):match.start(2)].strip()
    return (before + after).translate(_SEPARATOR_WIDTH)


def detect_question_start(
    line: str,
    min_remainder: int = 10,
    rules: Sequence[DetectorRule] = QUESTION_START_RULES,
) -> Optional[QuestionStart]:
    """
    Detect the start of a question on a single normalized line.

    The generic ``N. text`` form only counts when at least
    ``min_remainder`` characters follow the separator.
    """
    for rule in rules:
        match = rule.pattern.match(line)
        if not match:
            continue
        number = int(match.group(1))
        if number <= 0:
            continue
        remainder = match.group(2).strip() if match.lastindex >= 2 else ""
        if rule.name == "generic" and len(remainder) < min_remainder:
            continue
        return QuestionStart(
            number=number,
            remainder=remainder,
            kind=rule.kind,
            rule=rule.name,
        )
    return None


def detect_choice(
    line: str,
    rules: Sequence[DetectorRule] = CHOICE_RULES,
) -> Optional[ChoiceMatch]:
    """Detect a labeled choice (``1.``, ``b)``, ``(ウ)``, ``④`` ...)."""
    for rule in rules:
        match = rule.pattern.match(line)
        if not match:
            continue
        text = match.group(2).strip()
        key = normalize_answer(match.group(1))
        if key is None or not text:
            continue
        return ChoiceMatch(key=key, text=text, glyph=match.group(1),
                           rule=rule.name,
                           separator=_separator(line, match))
    return None


def detect_answer(
    line: str,
    rules: Sequence[DetectorRule] = ANSWER_RULES,
) -> Optional[AnswerMatch]:
    """Detect an answer stated inside the question document."""
    for rule in rules:
        match = rule.pattern.search(line) if rule.name == "japanese" \
            else rule.pattern.match(line)
        if not match:
            continue
        key = normalize_answer(match.group(1))
        if key is None:
            continue
        return AnswerMatch(key=key, glyph=match.group(1), rule=rule.name)
    return None
