"""
Quiz Extraction Engine
======================
Main orchestrator that combines segmentation, choice extraction,
answer-key reading, offset correction and validation into one pipeline.

Usage:
    engine = ExtractionEngine(config)
    result = engine.process(question_text, answer_text, source_id="exam-2024")
    # result is an ExtractionResult with structured JSON output

Architecture:
    question text → Normalizer → QuestionSegmenter → ChoiceExtractor →
        CategoryClassifier → DifficultyEstimator → QuestionSet
    answer text → Normalizer → AnswerKeyExtractor → AnswerSheet
    QuestionSet + AnswerSheet → OffsetCorrector → ValidationEngine
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Mapping, Optional, Union

from pydantic import ValidationError

from . import __version__
from .alignment import OffsetCorrector
from .answer_key import AnswerKeyExtractor
from .category import classify_category
from .choices import ChoiceExtractor
from .config import ExtractorConfig
from .diagnostics import analyze_text
from .difficulty import estimate_difficulty
from .fallback import InlineFallbackParser
from .models import (
    Anomaly,
    AnomalyType,
    AnswerSheet,
    AnswerSource,
    ExtractionResult,
    ParseStrategy,
    Question,
    QuestionSet,
)
from .normalizer import Profile, normalize
from .segmenter import QuestionSegmenter
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ExtractionEngine:
    """
    Document-to-quiz extraction engine.

    Orchestrates the full pipeline:
        1. Question segmentation (line state machine, inline fallback)
        2. Choice extraction, category and difficulty tagging
        3. Answer-key extraction
        4. Offset correction
        5. Validation

    Holds only configuration; safe to share between threads.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        configure_logging: bool = True,
    ):
        self.config = config or ExtractorConfig()
        if configure_logging:
            self._setup_logging()

        self.segmenter = QuestionSegmenter(self.config)
        self.choice_extractor = ChoiceExtractor()
        self.fallback = InlineFallbackParser(self.config)
        self.answer_extractor = AnswerKeyExtractor(self.config)
        self.corrector = OffsetCorrector(self.config)
        self.validator = ValidationEngine()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("quiz_extractor")
        package_logger.setLevel(log_level)
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

        # Handlers left by an earlier engine follow the new level
        for handler in package_logger.handlers:
            handler.setLevel(log_level)

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_path = Path(self.config.log_file).resolve()
            already = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path
                for h in package_logger.handlers
            )
            if not already:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)

    # ─── Questions ────────────────────────────────────────────────────────

    def parse_questions(self, text: str, source_id: str = "") -> QuestionSet:
        """
        Extract multiple-choice questions from question-document text.

        Args:
            text: Paged text of the question document.
            source_id: Identifier of the source document.

        Returns:
            QuestionSet, possibly empty. Empty sets carry diagnostics and
            an anomaly explaining why.

        Raises:
            TypeError: If ``text`` is None.
        """
        if text is None:
            raise TypeError("parse_questions() requires text, got None")

        start_time = time.time()
        question_set = QuestionSet(
            source_id=source_id,
            parser_version=__version__,
        )

        usable = normalize(text, Profile.COLLAPSED)
        if len(usable) < self.config.min_text_chars:
            logger.warning(
                f"Question text too short: {len(usable)} usable chars "
                f"(minimum {self.config.min_text_chars})"
            )
            question_set.diagnostics = analyze_text(text, self.config)
            question_set.anomalies.append(Anomaly(
                type=AnomalyType.INPUT_TOO_SHORT,
                severity=100,
                message="Not enough text to extract questions",
                context={"chars": len(usable)},
            ))
            return question_set

        logger.info("Phase 1: Line segmentation")
        questions = self._from_blocks(text, question_set)
        strategy = ParseStrategy.SEGMENTER

        if not questions:
            logger.info("Phase 1b: Inline-paragraph fallback")
            questions = self._from_fallback(text, question_set)
            strategy = ParseStrategy.FALLBACK

        if not questions:
            logger.warning("No questions detected by any strategy")
            question_set.diagnostics = analyze_text(text, self.config)
            question_set.anomalies.append(Anomaly(
                type=AnomalyType.NO_QUESTIONS_DETECTED,
                severity=100,
                message="Neither line segmentation nor inline fallback "
                        "found a question",
            ))
            return question_set

        question_set.questions = questions
        question_set.strategy = strategy
        self._flag_duplicates(question_set)

        elapsed = time.time() - start_time
        logger.info(
            f"Extracted {len(questions)} questions via {strategy.value} "
            f"in {elapsed:.2f}s"
        )
        return question_set

    def _from_blocks(self, text: str, question_set: QuestionSet) -> list[Question]:
        questions = []
        for block in self.segmenter.segment(text):
            choices = self.choice_extractor.extract(block)
            if choices is None:
                question_set.anomalies.append(Anomaly(
                    type=AnomalyType.PARTIAL_CHOICES,
                    severity=40,
                    message="Fewer than 2 usable choices; question dropped",
                    question_number=block.number,
                    context={"choices": len(block.choice_parts)},
                ))
                continue

            answer = self.choice_extractor.inline_answer(block, choices)
            question = self._build_question(
                question_set,
                number=block.number,
                text=block.stem,
                choices=choices,
                page=block.page,
                correct_answer=answer,
                answer_source=AnswerSource.INLINE if answer else None,
            )
            if question is not None:
                questions.append(question)
        return questions

    def _from_fallback(self, text: str, question_set: QuestionSet) -> list[Question]:
        questions = []
        for found in self.fallback.parse(text):
            question = self._build_question(
                question_set,
                number=found.number,
                text=found.text,
                choices=found.choices,
                page=found.page,
            )
            if question is not None:
                questions.append(question)
        return questions

    def _build_question(self, question_set: QuestionSet, **fields) -> Optional[Question]:
        try:
            question = Question(**fields)
        except ValidationError as e:
            logger.warning(f"Question {fields.get('number')} rejected: {e}")
            question_set.anomalies.append(Anomaly(
                type=AnomalyType.PARTIAL_CHOICES,
                severity=40,
                message="Question failed validation; dropped",
                question_number=fields.get("number"),
                context={"errors": e.error_count()},
            ))
            return None
        question.category = self.classify_category(question.text)
        question.difficulty = self.estimate_difficulty(question.text)
        return question

    def _flag_duplicates(self, question_set: QuestionSet):
        seen: set[int] = set()
        duplicates: list[int] = []
        for q in question_set.questions:
            if q.number in seen and q.number not in duplicates:
                duplicates.append(q.number)
            seen.add(q.number)
        if duplicates:
            logger.warning(f"Duplicate question numbers: {duplicates}")
            question_set.anomalies.append(Anomaly(
                type=AnomalyType.DUPLICATE_QUESTION_NUMBER,
                severity=30,
                message="Question numbers occur more than once",
                context={"numbers": duplicates},
            ))

    def classify_category(self, text: str) -> str:
        return classify_category(
            text, self.config.categories, self.config.default_category
        )

    def estimate_difficulty(self, text: str) -> int:
        return estimate_difficulty(
            text,
            self.config.difficulty_length_thresholds,
            self.config.complex_keywords,
            self.config.technical_terms,
        )

    # ─── Answers ──────────────────────────────────────────────────────────

    def read_answer_sheet(self, text: str) -> AnswerSheet:
        """Extract the answer sheet, including template scores."""
        return self.answer_extractor.extract(text)

    def parse_answers(self, text: str) -> dict[int, str]:
        """Question number -> canonical choice key, possibly empty."""
        return dict(self.read_answer_sheet(text).answers)

    def combine(
        self,
        question_set: QuestionSet,
        answers: Union[AnswerSheet, Mapping[int, str]],
    ) -> QuestionSet:
        """
        Fill ``correct_answer`` from an answer key, correcting a constant
        numbering offset when one is clearly present.
        """
        if question_set is None or answers is None:
            raise TypeError("combine() requires a question set and answers")
        if isinstance(answers, AnswerSheet):
            answers = answers.answers
        return self.corrector.apply(question_set, answers)

    # ─── Full Pipeline ────────────────────────────────────────────────────

    def process(
        self,
        question_text: str,
        answer_text: Optional[str] = None,
        source_id: str = "",
    ) -> ExtractionResult:
        """
        Run the whole pipeline on a question document and its answer key.

        Args:
            question_text: Paged text of the question document.
            answer_text: Text of the answer document; ``None`` skips
                answer resolution.
            source_id: Identifier of the source document.

        Returns:
            ExtractionResult with question set, answer sheet and validation.
        """
        question_set = self.parse_questions(question_text, source_id)

        answer_sheet = AnswerSheet()
        if answer_text is not None:
            logger.info("Phase 2: Answer key extraction")
            answer_sheet = self.read_answer_sheet(answer_text)
            logger.info("Phase 3: Offset correction")
            question_set = self.combine(question_set, answer_sheet)

        logger.info("Phase 4: Validation")
        validation = self.validator.validate(question_set, answer_sheet)

        return ExtractionResult(
            question_set=question_set,
            answer_sheet=answer_sheet,
            validation=validation,
        )


# ─── Module-level API ─────────────────────────────────────────────────────────


def _default_engine() -> ExtractionEngine:
    return ExtractionEngine(configure_logging=False)


def parse_questions(text: str, source_id: str = "") -> QuestionSet:
    return _default_engine().parse_questions(text, source_id)


def parse_answers(text: str) -> dict[int, str]:
    return _default_engine().parse_answers(text)


def combine(
    question_set: QuestionSet,
    answers: Union[AnswerSheet, Mapping[int, str]],
) -> QuestionSet:
    return _default_engine().combine(question_set, answers)
