"""
Answer Normalizer
=================
Maps every supported choice glyph to one canonical choice key (``a``-``e``).

Supported glyph families, each covering ordinals 1-5:
    - ASCII digits            1 2 3 4 5
    - full-width digits       １ ２ ３ ４ ５
    - circled digits          ① ② ③ ④ ⑤
    - Latin letters           a-e / A-E
    - full-width Latin        ａ-ｅ / Ａ-Ｅ
    - katakana ordinals       ア イ ウ エ オ
    - hiragana ordinals       あ い う え お
"""

from __future__ import annotations

from typing import Optional

from .models import CHOICE_KEYS

GLYPH_FAMILIES: dict[str, str] = {
    "digit": "12345",
    "fullwidth_digit": "１２３４５",
    "circled": "①②③④⑤",
    "lower": "abcde",
    "upper": "ABCDE",
    "fullwidth_lower": "ａｂｃｄｅ",
    "fullwidth_upper": "ＡＢＣＤＥ",
    "katakana": "アイウエオ",
    "hiragana": "あいうえお",
}

_GLYPH_TO_KEY: dict[str, str] = {
    glyph: CHOICE_KEYS[index]
    for glyphs in GLYPH_FAMILIES.values()
    for index, glyph in enumerate(glyphs)
}

# Character class source matching any single supported glyph
TOKEN_CLASS = "[" + "".join(GLYPH_FAMILIES.values()) + "]"


def normalize_answer(token: Optional[str]) -> Optional[str]:
    """
    Canonicalize an answer glyph.

    Returns ``None`` for anything unrecognized; never guesses.

    Example:
        >>> normalize_answer("②")
        'b'
        >>> normalize_answer("F") is None
        True
    """
    if not token:
        return None
    token = token.strip().rstrip(".．")
    if len(token) != 1:
        return None
    return _GLYPH_TO_KEY.get(token)


def ordinal(key: str) -> int:
    """1-based ordinal of a canonical key (``"c"`` -> 3)."""
    return CHOICE_KEYS.index(key) + 1


def glyph_family(token: str) -> Optional[str]:
    """Name of the glyph family a single token belongs to."""
    for name, glyphs in GLYPH_FAMILIES.items():
        if token in glyphs:
            return name
    return None


def glyph_for(family: str, position: int) -> str:
    """Glyph of ``family`` at 1-based ``position``."""
    return GLYPH_FAMILIES[family][position - 1]
