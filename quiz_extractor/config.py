"""
Configuration
=============
Tunable settings for the extraction engine. The offset-correction
thresholds in particular are heuristics, not contracts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .normalizer import PAGE_MARKER_PATTERN

ANSWER_PRECEDENCES = ("answer_key", "inline")

DEFAULT_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Cardiopulmonary Resuscitation",
     ("心肺蘇生", "CPR", "AED", "心停止", "蘇生", "resuscitation",
      "chest compression", "chest-compression")),
    ("Pharmacology",
     ("薬物", "薬剤", "投与", "副作用", "薬理", "mg", "ml", "dose",
      "drug", "medication")),
    ("Trauma Care",
     ("外傷", "創傷", "止血", "包帯", "骨折", "脱臼", "bleeding",
      "fracture", "bandage", "wound")),
    ("Respiratory",
     ("呼吸", "肺", "気管", "喘息", "肺炎", "呼吸困難", "airway", "breathing",
      "asthma", "pneumonia")),
    ("Cardiovascular",
     ("心臓", "血圧", "循環", "心電図", "心筋梗塞", "不整脈", "blood pressure",
      "ECG", "arrhythmia", "myocardial")),
    ("Law and Regulation",
     ("法律", "制度", "規則", "救急法", "医療法", "責任", "law",
      "regulation", "liability")),
    ("Cardiac Arrest",
     ("心肺停止", "心停止", "呼吸停止", "CPA", "cardiac arrest")),
)

DEFAULT_CATEGORY = "Cardiopulmonary Resuscitation"

DEFAULT_INTERROGATIVES: tuple[str, ...] = (
    "どれか", "いずれか", "どちらか", "選べ", "正しい", "誤っている",
    "適切", "which", "what", "select", "choose", "?", "？",
)

DEFAULT_COMPLEX_KEYWORDS: tuple[str, ...] = (
    "analyze", "evaluate", "synthesize", "compare", "contrast",
    "分析", "評価", "統合", "比較", "対照", "推論", "批判的",
)

DEFAULT_TECHNICAL_TERMS: tuple[str, ...] = (
    "hypothesis", "methodology", "paradigm", "correlation",
    "仮説", "方法論", "パラダイム", "相関", "因果関係",
)


@dataclass
class ExtractorConfig:
    """Configuration for the extraction engine."""

    # Input thresholds
    min_text_chars: int = 50
    min_answer_text_chars: int = 5
    min_stem_chars: int = 5
    generic_min_remainder: int = 10

    # Answer key
    answer_number_range: tuple[int, int] = (1, 1000)

    # Offset correction
    offset_window: int = 5
    offset_min_margin: int = 3
    offset_margin_ratio: float = 0.05
    accept_full_coverage_offset: bool = True

    # Inline answer vs. answer document
    answer_precedence: str = "answer_key"

    # Categories
    categories: tuple[tuple[str, tuple[str, ...]], ...] = DEFAULT_CATEGORIES
    default_category: str = DEFAULT_CATEGORY

    # Difficulty
    difficulty_length_thresholds: tuple[int, ...] = (200, 400)
    complex_keywords: tuple[str, ...] = DEFAULT_COMPLEX_KEYWORDS
    technical_terms: tuple[str, ...] = DEFAULT_TECHNICAL_TERMS

    # Fallback parser
    interrogative_keywords: tuple[str, ...] = DEFAULT_INTERROGATIVES
    fallback_max_stem_chars: int = 600
    fallback_max_choice_chars: int = 400

    # Paging
    page_marker_pattern: str = PAGE_MARKER_PATTERN

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.answer_precedence not in ANSWER_PRECEDENCES:
            raise ValueError(
                f"answer_precedence must be one of {ANSWER_PRECEDENCES}, "
                f"got {self.answer_precedence!r}"
            )
        if self.offset_window < 0:
            raise ValueError("offset_window must be >= 0")
        low, high = self.answer_number_range
        if low < 1 or high < low:
            raise ValueError(
                f"invalid answer_number_range: {self.answer_number_range}"
            )

    def offset_margin(self, total_questions: int) -> float:
        """Required lead of the best offset over direct matches."""
        return max(self.offset_min_margin,
                   self.offset_margin_ratio * total_questions)
