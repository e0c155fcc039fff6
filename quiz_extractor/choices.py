"""
Choice Extractor
================
Turns a segmented question block into its final ordered choice map,
joining continuation lines and enforcing the 2-5 choice rule.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import MIN_CHOICES
from .normalizer import strip_invisible
from .segmenter import QuestionBlock

logger = logging.getLogger(__name__)


class ChoiceExtractor:
    """Builds ``{key: text}`` choice maps from question blocks."""

    def extract(self, block: QuestionBlock) -> Optional[dict[str, str]]:
        """
        Args:
            block: A block produced by ``QuestionSegmenter``.

        Returns:
            Ordered choice map, or ``None`` when fewer than two non-empty
            choices remain.
        """
        choices: dict[str, str] = {}
        for key, parts in block.choice_parts.items():
            text = strip_invisible(" ".join(parts)).strip()
            if text:
                choices[key] = text

        if len(choices) < MIN_CHOICES:
            logger.warning(
                f"Question {block.number}: only {len(choices)} usable "
                f"choice(s), dropping"
            )
            return None

        return choices

    def inline_answer(
        self, block: QuestionBlock, choices: dict[str, str]
    ) -> Optional[str]:
        """Inline answer of ``block`` if it names one of ``choices``."""
        answer = block.inline_answer
        if answer is None:
            return None
        if answer not in choices:
            logger.warning(
                f"Question {block.number}: inline answer {answer!r} "
                f"names no extracted choice, ignoring"
            )
            return None
        return answer
