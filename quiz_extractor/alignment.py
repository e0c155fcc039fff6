"""
Alignment / Offset Corrector
============================
Reconciles question numbers with answer-key numbers.

The two documents are digitized independently, so the answer key can be
shifted by a constant amount (every answer printed one number lower, a
skipped heading row, ...). The corrector searches a small window of
global offsets and applies the best one only when it clearly beats the
direct join. The correction is global: documents whose numbering drifts
part-way through are not repaired.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from .config import ExtractorConfig
from .models import (
    AlignmentReport,
    Anomaly,
    AnomalyType,
    AnswerSource,
    Question,
    QuestionSet,
)

logger = logging.getLogger(__name__)


def _add_anomaly(anomalies: list[Anomaly], anomaly: Anomaly):
    if anomaly not in anomalies:
        anomalies.append(anomaly)


class OffsetCorrector:
    """
    Finds and applies the global offset between question and answer numbers.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()

    def candidate_offsets(self) -> list[int]:
        """Offsets in tie-break order: 0, +1, -1, +2, -2, ..."""
        window = self.config.offset_window
        return sorted(range(-window, window + 1), key=lambda o: (abs(o), -o))

    def find_offset(
        self,
        numbers: Sequence[int],
        answers: Mapping[int, str],
    ) -> AlignmentReport:
        """
        Score every candidate offset and decide which one to apply.

        Args:
            numbers: Question numbers in document order (duplicates kept).
            answers: Answer-key number -> canonical token.

        Returns:
            AlignmentReport with ``applied_offset`` set; resolution lists are
            left empty.
        """
        total = len(numbers)
        direct = sum(1 for n in numbers if n in answers)

        offset_counts: dict[int, int] = {}
        best_offset, best_count = 0, direct
        for offset in self.candidate_offsets():
            count = sum(1 for n in numbers if n + offset in answers)
            offset_counts[offset] = count
            if count > best_count:
                best_offset, best_count = offset, count

        threshold = direct + self.config.offset_margin(total)
        applied = 0
        if best_offset != 0:
            clear_win = best_count > threshold
            full_coverage = (
                self.config.accept_full_coverage_offset
                and best_count == total
                and direct < best_count
            )
            if clear_win or full_coverage:
                applied = best_offset

        return AlignmentReport(
            direct_matches=direct,
            offset_counts=dict(sorted(offset_counts.items())),
            best_offset=best_offset,
            best_count=best_count,
            threshold=threshold,
            applied_offset=applied,
        )

    def apply(
        self,
        question_set: QuestionSet,
        answers: Mapping[int, str],
    ) -> QuestionSet:
        """
        Return a copy of ``question_set`` with ``correct_answer`` filled in
        wherever the answer key resolves it. Re-applying the same answers
        gives the same result.
        """
        result = question_set.model_copy(deep=True)
        questions = result.questions
        report = self.find_offset([q.number for q in questions], answers)
        offset = report.applied_offset

        if offset:
            logger.info(
                f"Applying answer offset {offset:+d} "
                f"({report.best_count} matches vs {report.direct_matches} direct)"
            )
        elif report.best_offset != 0:
            logger.warning(
                f"Offset {report.best_offset:+d} matched {report.best_count} "
                f"questions vs {report.direct_matches} direct, below "
                f"threshold {report.threshold:g}; keeping direct numbering"
            )
            _add_anomaly(result.anomalies, Anomaly(
                type=AnomalyType.ANSWER_MISMATCH,
                severity=40,
                message="Answer numbering offset could not be resolved confidently",
                context={
                    "best_offset": report.best_offset,
                    "best_count": report.best_count,
                    "direct_matches": report.direct_matches,
                },
            ))

        if questions and len(answers) != len(questions):
            logger.warning(
                f"Answer count {len(answers)} differs from question count "
                f"{len(questions)}"
            )
            _add_anomaly(result.anomalies, Anomaly(
                type=AnomalyType.ANSWER_MISMATCH,
                severity=20,
                message="Answer count differs from question count",
                context={"answers": len(answers), "questions": len(questions)},
            ))

        for question in questions:
            self._resolve(question, answers.get(question.number + offset),
                          report)

        logger.info(
            f"Resolved {len(report.resolved)}/{len(questions)} answers"
        )
        result.alignment = report
        return result

    def _resolve(
        self,
        question: Question,
        answer: Optional[str],
        report: AlignmentReport,
    ):
        if answer is not None and answer not in question.choices:
            logger.warning(
                f"Question {question.number}: answer {answer!r} is not one "
                f"of its choices {list(question.choices)}"
            )
            _add_anomaly(question.anomalies, Anomaly(
                type=AnomalyType.ANSWER_MISMATCH,
                severity=50,
                message="Answer key names a choice the question does not have",
                question_number=question.number,
                context={"answer": answer},
            ))
            answer = None

        if answer is not None:
            if question.answer_source is AnswerSource.INLINE \
                    and question.correct_answer != answer:
                self._conflict(question, answer, report)
            else:
                question.correct_answer = answer
                question.answer_source = AnswerSource.ANSWER_KEY

        if question.correct_answer is None:
            report.unresolved.append(question.number)
            _add_anomaly(question.anomalies, Anomaly(
                type=AnomalyType.MISSING_ANSWER,
                severity=60,
                message="Needs manual answer entry",
                question_number=question.number,
            ))
        else:
            report.resolved.append(question.number)
            question.anomalies = [
                a for a in question.anomalies
                if a.type != AnomalyType.MISSING_ANSWER
            ]

    def _conflict(self, question: Question, answer: str,
                  report: AlignmentReport):
        """Inline answer and answer key disagree."""
        keep_inline = self.config.answer_precedence == "inline"
        logger.warning(
            f"Question {question.number}: inline answer "
            f"{question.correct_answer!r} conflicts with answer key "
            f"{answer!r}; keeping {'inline' if keep_inline else 'answer key'}"
        )
        report.conflicts.append(question.number)
        _add_anomaly(question.anomalies, Anomaly(
            type=AnomalyType.ANSWER_CONFLICT,
            severity=50,
            message="Inline answer conflicts with answer key",
            question_number=question.number,
            context={"inline": question.correct_answer, "answer_key": answer},
        ))
        if not keep_inline:
            question.correct_answer = answer
            question.answer_source = AnswerSource.ANSWER_KEY
