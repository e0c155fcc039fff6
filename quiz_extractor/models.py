"""
Data Models
===========
Pydantic models for structured quiz extraction output.
All models are serializable to JSON for the ingestion pipeline.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from .normalizer import strip_invisible

CHOICE_KEYS = ("a", "b", "c", "d", "e")
MIN_CHOICES = 2
MAX_CHOICES = 5


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ─── Enums ────────────────────────────────────────────────────────────────────


class AnomalyType(str, Enum):
    """Non-fatal conditions detected while extracting a quiz."""
    INPUT_TOO_SHORT = "input_too_short"
    NO_QUESTIONS_DETECTED = "no_questions_detected"
    PARTIAL_CHOICES = "partial_choices"
    ANSWER_MISMATCH = "answer_mismatch"
    ANSWER_CONFLICT = "answer_conflict"
    DUPLICATE_QUESTION_NUMBER = "duplicate_question_number"
    MISSING_ANSWER = "missing_answer"


class AnswerSource(str, Enum):
    """Where a question's correct answer came from."""
    INLINE = "inline"
    ANSWER_KEY = "answer_key"


class ParseStrategy(str, Enum):
    """Which segmentation strategy produced a question set."""
    SEGMENTER = "segmenter"
    FALLBACK = "fallback"
    NONE = "none"


# ─── Anomaly Model ────────────────────────────────────────────────────────────


class Anomaly(BaseModel):
    """A condition a human reviewer should know about."""
    type: AnomalyType
    severity: int = Field(
        ge=0, le=100,
        description="Severity score 0-100"
    )
    message: str
    question_number: Optional[int] = None
    context: Optional[dict] = None


# ─── Question Model ──────────────────────────────────────────────────────────


class Question(BaseModel):
    """
    A single multiple-choice question.

    The engine tags ``category`` and ``difficulty`` right after creation;
    afterwards only the alignment step writes ``correct_answer``.
    """
    number: int = Field(ge=1, description="Question number as printed")
    text: str
    choices: dict[str, str] = Field(
        description="Canonical choice key -> choice text, first-seen order"
    )
    correct_answer: Optional[str] = None
    answer_source: Optional[AnswerSource] = None
    category: Optional[str] = None
    difficulty: int = Field(
        default=1, ge=1, le=5,
        description="Estimated difficulty 1 (easy) - 5 (hard)"
    )
    page: Optional[int] = None
    anomalies: list[Anomaly] = Field(default_factory=list)

    @field_validator("text")
    @classmethod
    def _text_not_empty(cls, value: str) -> str:
        value = strip_invisible(value).strip()
        if not value:
            raise ValueError("question text must not be empty")
        return value

    @field_validator("choices")
    @classmethod
    def _choice_count(cls, value: dict[str, str]) -> dict[str, str]:
        cleaned = {}
        for key, text in value.items():
            if key not in CHOICE_KEYS:
                raise ValueError(f"unknown choice key: {key!r}")
            text = strip_invisible(text).strip()
            if text:
                cleaned[key] = text
        if not MIN_CHOICES <= len(cleaned) <= MAX_CHOICES:
            raise ValueError(
                f"expected {MIN_CHOICES}-{MAX_CHOICES} choices, "
                f"got {len(cleaned)}"
            )
        return cleaned

    @field_validator("correct_answer")
    @classmethod
    def _answer_is_key(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in CHOICE_KEYS:
            raise ValueError(f"unknown answer key: {value!r}")
        return value

    @computed_field
    @property
    def has_answer(self) -> bool:
        return self.correct_answer is not None

    @computed_field
    @property
    def needs_manual_answer(self) -> bool:
        """True when no answer could be resolved for this question."""
        return self.correct_answer is None


# ─── Answer Models ────────────────────────────────────────────────────────────


class AnswerEntry(BaseModel):
    """One (question number, canonical token) pair from an answer key."""
    question_number: int
    answer_token: str


class AnswerSheet(BaseModel):
    """Answers recovered from a separately numbered answer document."""
    answers: dict[int, str] = Field(default_factory=dict)
    template: Optional[str] = Field(
        default=None,
        description="Name of the winning layout template"
    )
    template_scores: dict[str, int] = Field(default_factory=dict)
    extracted_at: str = Field(default_factory=utc_timestamp)

    @computed_field
    @property
    def total_answers(self) -> int:
        return len(self.answers)

    def entries(self) -> list[AnswerEntry]:
        return [
            AnswerEntry(question_number=number, answer_token=token)
            for number, token in sorted(self.answers.items())
        ]


# ─── Diagnostics / Alignment ─────────────────────────────────────────────────


class TextDiagnostics(BaseModel):
    """Statistics about raw input, returned when nothing could be parsed."""
    char_count: int = 0
    line_count: int = 0
    page_count: int = 0
    digit_count: int = 0
    choice_marker_count: int = 0
    question_marker_count: int = 0
    interrogative_keyword_count: int = 0
    category_keyword_count: int = 0
    sample: str = ""


class AlignmentReport(BaseModel):
    """How question numbers were reconciled against answer numbers."""
    direct_matches: int = 0
    offset_counts: dict[int, int] = Field(default_factory=dict)
    best_offset: int = 0
    best_count: int = 0
    threshold: float = 0.0
    applied_offset: int = 0
    resolved: list[int] = Field(default_factory=list)
    unresolved: list[int] = Field(default_factory=list)
    conflicts: list[int] = Field(default_factory=list)

    @computed_field
    @property
    def offset_applied(self) -> bool:
        return self.applied_offset != 0


# ─── Question Set ─────────────────────────────────────────────────────────────


class QuestionSet(BaseModel):
    """
    Ordered questions extracted from one question document.
    Possibly empty; ``anomalies`` and ``diagnostics`` explain why.
    """
    questions: list[Question] = Field(default_factory=list)
    extracted_at: str = Field(default_factory=utc_timestamp)
    source_id: str = ""
    parser_version: str = "1.0.0"
    strategy: ParseStrategy = ParseStrategy.NONE
    diagnostics: Optional[TextDiagnostics] = None
    anomalies: list[Anomaly] = Field(default_factory=list)
    alignment: Optional[AlignmentReport] = None

    @computed_field
    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @computed_field
    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if q.has_answer)


# ─── Validation / Result ─────────────────────────────────────────────────────


class ValidationReport(BaseModel):
    """Post-combine validation report."""
    total_questions: int = 0
    questions_with_answer: int = 0
    total_answers: int = 0
    applied_offset: int = 0
    missing_question_numbers: list[int] = Field(default_factory=list)
    duplicate_question_numbers: list[int] = Field(default_factory=list)
    questions_missing_answer: list[int] = Field(default_factory=list)
    anomaly_breakdown: dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def answered_rate(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return round(
            self.questions_with_answer / self.total_questions * 100,
            2
        )


class ExtractionResult(BaseModel):
    """
    Complete output of a question + answer document pair.
    This is the top-level JSON structure handed to the ingestion pipeline.
    """
    question_set: QuestionSet
    answer_sheet: AnswerSheet = Field(default_factory=AnswerSheet)
    validation: ValidationReport = Field(default_factory=ValidationReport)
