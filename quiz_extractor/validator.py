"""
Validation Engine
=================
Post-combine validation and reporting.

After combining a question document with its answer key, reports:
    - Total Questions
    - Questions With a Resolved Answer
    - Missing Question Numbers (gaps in sequence)
    - Duplicate Question Numbers
    - Questions Needing Manual Answer Entry
    - Applied Answer Offset
    - Anomaly breakdown by type

Never silently ignores failures.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from .models import AnswerSheet, QuestionSet, ValidationReport

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Validates a combined question set and produces a report.
    """

    def validate(
        self,
        question_set: QuestionSet,
        answer_sheet: Optional[AnswerSheet] = None,
    ) -> ValidationReport:
        """
        Run full validation on a question set.

        Args:
            question_set: Question set, usually after ``combine``.
            answer_sheet: The answer sheet it was combined with, if any.

        Returns:
            ValidationReport with all detected issues.
        """
        report = ValidationReport()
        questions = question_set.questions

        if answer_sheet is not None:
            report.total_answers = answer_sheet.total_answers
        if question_set.alignment is not None:
            report.applied_offset = question_set.alignment.applied_offset

        anomaly_counts: dict[str, int] = Counter(
            a.type.value for a in question_set.anomalies
        )

        if not questions:
            logger.warning("No questions to validate")
            report.anomaly_breakdown = dict(anomaly_counts)
            return report

        report.total_questions = len(questions)

        question_numbers = [q.number for q in questions]
        number_counts = Counter(question_numbers)

        report.duplicate_question_numbers = sorted([
            num for num, count in number_counts.items() if count > 1
        ])

        expected = set(range(min(question_numbers), max(question_numbers) + 1))
        report.missing_question_numbers = sorted(
            expected - set(question_numbers)
        )

        for q in questions:
            if q.has_answer:
                report.questions_with_answer += 1
            else:
                report.questions_missing_answer.append(q.number)

            for anomaly in q.anomalies:
                anomaly_counts[anomaly.type.value] += 1

        report.anomaly_breakdown = dict(anomaly_counts)

        logger.info("=" * 60)
        logger.info("VALIDATION REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Questions: {report.total_questions}")
        logger.info(
            f"With Answer: {report.questions_with_answer} "
            f"({report.answered_rate}%)"
        )
        logger.info(f"Answers In Key: {report.total_answers}")
        logger.info(f"Applied Offset: {report.applied_offset:+d}")
        logger.info(
            f"Missing Question Numbers: "
            f"{len(report.missing_question_numbers)}"
        )
        logger.info(
            f"Duplicate Question Numbers: "
            f"{len(report.duplicate_question_numbers)}"
        )
        logger.info(
            f"Needs Manual Answer: "
            f"{len(report.questions_missing_answer)}"
        )

        if report.anomaly_breakdown:
            logger.info("Anomaly Breakdown:")
            for anomaly_type, count in sorted(
                report.anomaly_breakdown.items()
            ):
                logger.info(f"  • {anomaly_type}: {count}")

        logger.info("=" * 60)

        return report
