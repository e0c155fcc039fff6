"""
Quiz Extractor
==============
Turns loosely formatted exam documents into structured multiple-choice
question sets.

Architecture:
    - Normalizer: Unifies line breaks, invisible characters and spacing
    - Segmenter: Line state machine that detects question and choice starts
    - Fallback Parser: Finds questions in whitespace-collapsed paragraphs
    - Answer Extractor: Reads the answer key with competing layout templates
    - Offset Corrector: Aligns answer numbering with question numbering
    - Validation Engine: Reports gaps, duplicates and missing answers

Version: 1.0.0
"""

__version__ = "1.0.0"

from .category import classify_category
from .config import ExtractorConfig
from .engine import ExtractionEngine, combine, parse_answers, parse_questions
from .models import (
    Anomaly,
    AnomalyType,
    AnswerSheet,
    ExtractionResult,
    Question,
    QuestionSet,
    ValidationReport,
)

__all__ = [
    "Anomaly",
    "AnomalyType",
    "AnswerSheet",
    "ExtractionEngine",
    "ExtractionResult",
    "ExtractorConfig",
    "Question",
    "QuestionSet",
    "ValidationReport",
    "classify_category",
    "combine",
    "parse_answers",
    "parse_questions",
]
