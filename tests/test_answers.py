"""
Test Suite for Answer Resolution
================================
Tests for glyph normalization, answer-key templates, offset correction,
inline/answer-key conflicts, validation and the full pipeline.
"""

from __future__ import annotations

import logging

import pytest

from quiz_extractor.alignment import OffsetCorrector
from quiz_extractor.answer_key import (
    ANSWER_TEMPLATES,
    AnswerKeyExtractor,
    select_best,
)
from quiz_extractor.config import ExtractorConfig
from quiz_extractor.engine import (
    ExtractionEngine,
    combine,
    parse_answers,
    parse_questions,
)
from quiz_extractor.glyphs import glyph_family, normalize_answer, ordinal
from quiz_extractor.models import (
    CHOICE_KEYS,
    AnomalyType,
    AnswerSheet,
    AnswerSource,
    Question,
    QuestionSet,
)
from quiz_extractor.validator import ValidationEngine


SCENARIO_A = (
    "Q1 What chest-compression depth is correct for adult CPR?\n"
    "1. 3-4cm\n"
    "2. 5-6cm\n"
    "3. 7-8cm\n"
    "4. 9-10cm\n"
    "5. 11-12cm\n"
    "Q2 ..."
)

SCENARIO_B = "1 2\n2 5\n3 1"

THREE_QUESTIONS = (
    "Q1 What chest-compression depth is correct for adult CPR?\n"
    "1. 3-4cm\n2. 5-6cm\n3. 7-8cm\n"
    "Q2 Which drug is given first in anaphylaxis?\n"
    "1. Epinephrine\n2. Aspirin\n3. Insulin\n"
    "Q3 Which sign suggests a fracture?\n"
    "1. Swelling\n2. Normal movement\n"
)

INLINE_ANSWER = (
    "Q1 Which drug dose is appropriate for an adult patient?\n"
    "1. Ten milligrams\n"
    "2. Twenty milligrams\n"
    "3. Thirty milligrams\n"
    "Answer: 2\n"
)


def _question_set(numbers, choice_count=5) -> QuestionSet:
    return QuestionSet(questions=[
        Question(
            number=n,
            text=f"Question {n} text",
            choices={k: f"Option {k}" for k in CHOICE_KEYS[:choice_count]},
        )
        for n in numbers
    ])


def _engine(**overrides) -> ExtractionEngine:
    return ExtractionEngine(ExtractorConfig(**overrides),
                            configure_logging=False)


# ═══════════════════════════════════════════════════════════════════════════════
# ANSWER NORMALIZER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestAnswerNormalizer:
    """Test glyph canonicalization."""

    @pytest.mark.parametrize("token,key", [
        ("1", "a"), ("5", "e"),
        ("２", "b"),
        ("③", "c"),
        ("d", "d"), ("D", "d"),
        ("ａ", "a"), ("Ｅ", "e"),
        ("ア", "a"), ("オ", "e"),
        ("い", "b"), ("お", "e"),
        (" 3. ", "c"),
    ])
    def test_known_glyphs(self, token, key):
        assert normalize_answer(token) == key

    @pytest.mark.parametrize("token", ["", None, "6", "F", "ab", "⑥", "カ"])
    def test_unknown_glyphs(self, token):
        assert normalize_answer(token) is None

    def test_ordinal_and_family(self):
        assert ordinal("c") == 3
        assert glyph_family("④") == "circled"
        assert glyph_family("エ") == "katakana"
        assert glyph_family("z") is None


# ═══════════════════════════════════════════════════════════════════════════════
# ANSWER EXTRACTOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestAnswerKeyExtractor:
    """Test layout templates and best-template selection."""

    def test_template_battery(self):
        names = [t.name for t in ANSWER_TEMPLATES]
        assert len(names) >= 8
        assert names[0] == "inline_labeled"
        assert names[-1] == "line_pair"

    def test_scenario_b(self):
        sheet = AnswerKeyExtractor().extract(SCENARIO_B)
        assert sheet.answers == {1: "b", 2: "e", 3: "a"}
        assert sheet.template == "spaced"
        assert sheet.template_scores["spaced"] == 3

    @pytest.mark.parametrize("text,template,answers", [
        ("1. b\n2. c\n3. a", "dot", {1: "b", 2: "c", 3: "a"}),
        ("1) c\n2) a", "paren", {1: "c", 2: "a"}),
        ("1-② 2-④ 3-①", "dash", {1: "b", 2: "d", 3: "a"}),
        ("[1] ア\n[2] イ\n[3] ウ", "bracketed", {1: "a", 2: "b", 3: "c"}),
        ("(1) ② (2) ④", "parenthesized", {1: "b", 2: "d"}),
        ("1\t3\n2\t4", "tab", {1: "c", 2: "d"}),
        ("1 | a\n2 | b", "pipe", {1: "a", 2: "b"}),
        ("1 ...... c\n2 ...... d", "dot_leader", {1: "c", 2: "d"}),
        ("問1 答え：3\n問2 答え：ア", "inline_labeled", {1: "c", 2: "a"}),
        ("1\nb\n2\nd\n3\na", "line_pair", {1: "b", 2: "d", 3: "a"}),
    ])
    def test_layouts(self, text, template, answers):
        sheet = AnswerKeyExtractor().extract(text)
        assert sheet.template == template
        assert sheet.answers == answers

    def test_number_range(self):
        sheet = AnswerKeyExtractor().extract("0. a\n1001. b\n5. c")
        assert sheet.answers == {5: "c"}

    def test_later_match_overwrites(self):
        assert parse_answers("1. a\n1. c\n2. b") == {1: "c", 2: "b"}

    def test_unknown_tokens_skipped(self):
        assert parse_answers("1. f\n2. b") == {2: "b"}

    def test_too_short(self):
        assert parse_answers("1 a") == {}

    def test_nothing_recognized(self):
        sheet = AnswerKeyExtractor().extract("no answers in this document")
        assert sheet.answers == {}
        assert sheet.template is None
        assert set(sheet.template_scores) == {t.name for t in ANSWER_TEMPLATES}

    def test_none_rejected(self):
        with pytest.raises(TypeError):
            parse_answers(None)

    def test_select_best_tie_goes_to_first(self):
        first, second, third = ANSWER_TEMPLATES[:3]
        best = select_best([
            (first, {1: "a"}),
            (second, {1: "a", 2: "b"}),
            (third, {1: "c", 2: "d"}),
        ])
        assert best[0] is second

    def test_select_best_ignores_empty(self):
        assert select_best([(ANSWER_TEMPLATES[0], {})]) is None

    def test_entries(self):
        sheet = AnswerSheet(answers={2: "b", 1: "a"})
        entries = sheet.entries()
        assert [(e.question_number, e.answer_token) for e in entries] == [
            (1, "a"), (2, "b"),
        ]
        assert sheet.total_answers == 2


# ═══════════════════════════════════════════════════════════════════════════════
# OFFSET CORRECTOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestOffsetCorrector:
    """Test global offset detection and application."""

    def test_candidate_order(self):
        assert OffsetCorrector().candidate_offsets() == [
            0, 1, -1, 2, -2, 3, -3, 4, -4, 5, -5,
        ]

    def test_scenario_b_with_a(self):
        question_set = combine(parse_questions(SCENARIO_A),
                               parse_answers(SCENARIO_B))
        q = question_set.questions[0]
        assert q.correct_answer == "b"
        assert q.answer_source is AnswerSource.ANSWER_KEY
        assert question_set.alignment.applied_offset == 0

    def test_scenario_c(self):
        question_set = _question_set([1, 2, 3])
        result = combine(question_set, {2: "b", 3: "c", 4: "a"})
        assert result.alignment.best_offset == 1
        assert result.alignment.applied_offset == 1
        assert [q.correct_answer for q in result.questions] == ["b", "c", "a"]

    @pytest.mark.parametrize("shift", range(-5, 6))
    def test_shift_recovery(self, shift):
        numbers = list(range(11, 31))
        aligned = {n: CHOICE_KEYS[n % 5] for n in numbers}
        shifted = {n + shift: key for n, key in aligned.items()}

        expected = combine(_question_set(numbers), aligned)
        recovered = combine(_question_set(numbers), shifted)

        assert [q.correct_answer for q in recovered.questions] == \
            [q.correct_answer for q in expected.questions]
        assert recovered.alignment.applied_offset == shift

    def test_aligned_data_keeps_zero(self):
        report = OffsetCorrector().find_offset(
            list(range(1, 11)), {n: "a" for n in range(1, 11)}
        )
        assert report.best_offset == 0
        assert report.applied_offset == 0
        assert report.direct_matches == 10

    def test_threshold_guard(self, caplog):
        numbers = list(range(1, 40, 2))
        answers = {n: "a" for n in (1, 3, 5, 7, 9)}
        answers.update({n: "b" for n in range(12, 25, 2)})

        report = OffsetCorrector().find_offset(numbers, answers)
        assert report.direct_matches == 5
        assert report.best_offset == 1
        assert report.best_count == 7
        assert report.threshold == 8
        assert report.applied_offset == 0

        with caplog.at_level(logging.WARNING, logger="quiz_extractor"):
            result = combine(_question_set(numbers), answers)
        assert "keeping direct numbering" in caplog.text
        mismatch = [a for a in result.anomalies
                    if a.type == AnomalyType.ANSWER_MISMATCH
                    and a.context.get("best_offset") == 1]
        assert len(mismatch) == 1
        assert result.questions[0].correct_answer == "a"

    def test_full_coverage_rule_can_be_disabled(self):
        corrector = OffsetCorrector(
            ExtractorConfig(accept_full_coverage_offset=False)
        )
        report = corrector.find_offset([1, 2, 3], {2: "b", 3: "c", 4: "a"})
        assert report.best_offset == 1
        assert report.applied_offset == 0

    def test_window_bounds_search(self):
        numbers = list(range(1, 400, 20))
        report = OffsetCorrector().find_offset(
            numbers, {n + 6: "a" for n in numbers}
        )
        assert report.best_count == 0
        assert report.applied_offset == 0
        assert set(report.offset_counts) == set(range(-5, 6))

    def test_count_mismatch_flagged(self):
        question_set = combine(parse_questions(SCENARIO_A),
                               parse_answers(SCENARIO_B))
        mismatch = [a for a in question_set.anomalies
                    if a.type == AnomalyType.ANSWER_MISMATCH]
        assert mismatch[0].context == {"answers": 3, "questions": 1}

    def test_answer_not_among_choices(self):
        result = combine(_question_set([1], choice_count=2), {1: "e"})
        q = result.questions[0]
        assert q.correct_answer is None
        types = [a.type for a in q.anomalies]
        assert AnomalyType.ANSWER_MISMATCH in types
        assert AnomalyType.MISSING_ANSWER in types

    def test_missing_answer_needs_manual_entry(self):
        result = combine(_question_set([1, 2]), {1: "a"})
        assert result.questions[0].correct_answer == "a"
        assert result.questions[1].needs_manual_answer
        assert result.alignment.unresolved == [2]
        assert result.questions[1].anomalies[0].message == \
            "Needs manual answer entry"

    def test_input_not_mutated(self):
        question_set = _question_set([1, 2])
        combine(question_set, {1: "a", 2: "b"})
        assert all(q.correct_answer is None for q in question_set.questions)

    def test_idempotent(self):
        question_set = _question_set(range(1, 6))
        answers = {2: "a", 3: "b", 4: "c", 5: "d", 6: "e"}
        once = combine(question_set, answers)
        twice = combine(once, answers)
        assert once.model_dump() == twice.model_dump()

    def test_none_rejected(self):
        with pytest.raises(TypeError):
            combine(_question_set([1]), None)


class TestAnswerPrecedence:
    """Test inline answers against the answer document."""

    def test_inline_answer_kept_when_key_silent(self):
        result = combine(parse_questions(INLINE_ANSWER), {})
        q = result.questions[0]
        assert q.correct_answer == "b"
        assert q.answer_source is AnswerSource.INLINE
        assert not q.anomalies

    def test_answer_key_wins_by_default(self, caplog):
        with caplog.at_level(logging.WARNING, logger="quiz_extractor"):
            result = combine(parse_questions(INLINE_ANSWER), {1: "c"})
        q = result.questions[0]
        assert q.correct_answer == "c"
        assert q.answer_source is AnswerSource.ANSWER_KEY
        assert [a.type for a in q.anomalies] == [AnomalyType.ANSWER_CONFLICT]
        assert result.alignment.conflicts == [1]
        assert "conflicts with answer key" in caplog.text

    def test_inline_precedence(self):
        engine = _engine(answer_precedence="inline")
        result = engine.combine(engine.parse_questions(INLINE_ANSWER), {1: "c"})
        q = result.questions[0]
        assert q.correct_answer == "b"
        assert q.answer_source is AnswerSource.INLINE
        assert q.anomalies[0].context == {"inline": "b", "answer_key": "c"}

    def test_conflict_recorded_once(self):
        engine = _engine(answer_precedence="inline")
        question_set = engine.parse_questions(INLINE_ANSWER)
        once = engine.combine(question_set, {1: "c"})
        twice = engine.combine(once, {1: "c"})
        assert len(twice.questions[0].anomalies) == 1
        assert once.questions == twice.questions

    def test_invalid_precedence(self):
        with pytest.raises(ValueError):
            ExtractorConfig(answer_precedence="latest")


# ═══════════════════════════════════════════════════════════════════════════════
# VALIDATION ENGINE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestValidationEngine:
    """Test the post-combine report."""

    def test_empty_set(self):
        report = ValidationEngine().validate(QuestionSet())
        assert report.total_questions == 0
        assert report.answered_rate == 0.0

    def test_gaps_duplicates_and_missing_answers(self):
        question_set = combine(_question_set([1, 2, 4, 4]), {1: "a", 2: "b"})
        report = ValidationEngine().validate(
            question_set, AnswerSheet(answers={1: "a", 2: "b"})
        )
        assert report.total_questions == 4
        assert report.questions_with_answer == 2
        assert report.answered_rate == 50.0
        assert report.total_answers == 2
        assert report.missing_question_numbers == [3]
        assert report.duplicate_question_numbers == [4]
        assert report.questions_missing_answer == [4, 4]
        assert report.anomaly_breakdown["missing_answer"] == 2

    def test_set_level_anomalies_counted(self):
        question_set = parse_questions("too short")
        report = ValidationEngine().validate(question_set)
        assert report.anomaly_breakdown == {"input_too_short": 1}


# ═══════════════════════════════════════════════════════════════════════════════
# FULL PIPELINE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestExtractionEngine:
    """Test ExtractionEngine.process."""

    def test_process_with_offset(self):
        result = _engine().process(THREE_QUESTIONS, "2 2\n3 3\n4 1",
                                   source_id="exam-c")
        assert result.question_set.source_id == "exam-c"
        assert [q.correct_answer for q in result.question_set.questions] == \
            ["b", "c", "a"]
        assert result.answer_sheet.template == "spaced"
        assert result.validation.applied_offset == 1
        assert result.validation.questions_with_answer == 3
        assert result.validation.questions_missing_answer == []

    def test_process_without_answers(self):
        result = _engine().process(THREE_QUESTIONS)
        assert result.question_set.alignment is None
        assert result.validation.total_questions == 3
        assert result.validation.questions_with_answer == 0

    def test_result_serializes(self):
        result = _engine().process(THREE_QUESTIONS, "1 2\n2 1\n3 1")
        data = result.model_dump(mode="json")
        assert data["question_set"]["total_questions"] == 3
        assert data["validation"]["answered_rate"] == 100.0
        assert data["question_set"]["questions"][0]["choices"]["b"] == "5-6cm"

    def test_log_file(self, tmp_path):
        log_path = tmp_path / "logs" / "extract.log"
        engine = ExtractionEngine(ExtractorConfig(log_file=str(log_path)))
        try:
            engine.process(THREE_QUESTIONS, "1 2\n2 1\n3 1")
        finally:
            package_logger = logging.getLogger("quiz_extractor")
            for handler in list(package_logger.handlers):
                package_logger.removeHandler(handler)
                handler.close()
            package_logger.setLevel(logging.NOTSET)
        assert "VALIDATION REPORT" in log_path.read_text(encoding="utf-8")

    def test_second_engine_updates_handler_level(self):
        package_logger = logging.getLogger("quiz_extractor")
        try:
            ExtractionEngine(ExtractorConfig(log_level="WARNING"))
            ExtractionEngine(ExtractorConfig(log_level="DEBUG"))
            assert package_logger.level == logging.DEBUG
            assert package_logger.handlers
            assert all(h.level == logging.DEBUG
                       for h in package_logger.handlers)
        finally:
            for handler in list(package_logger.handlers):
                package_logger.removeHandler(handler)
                handler.close()
            package_logger.setLevel(logging.NOTSET)
