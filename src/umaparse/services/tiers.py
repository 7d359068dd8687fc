"""Tier glyphs marking the effectiveness variants of a skill.

``◎`` most effective, ``○`` moderately effective, ``×`` ineffective. OCR
tends to read the circles as copyright-like glyphs or as a trailing ``O``.
"""

from __future__ import annotations

import re

DOUBLE_CIRCLE = "◎"
SINGLE_CIRCLE = "○"
CROSS = "×"
TIER_VARIANT_GLYPHS = (DOUBLE_CIRCLE, SINGLE_CIRCLE, CROSS)

_TIER_PATTERN = re.compile(r"[◎○×©®™]")

TIER_COMPATIBILITY: dict[str, frozenset[str]] = {
    DOUBLE_CIRCLE: frozenset({SINGLE_CIRCLE, "©", "®", "™"}),
    SINGLE_CIRCLE: frozenset({DOUBLE_CIRCLE, "©", "®", "™"}),
    CROSS: frozenset({CROSS}),
    "©": frozenset({DOUBLE_CIRCLE, SINGLE_CIRCLE}),
    "®": frozenset({DOUBLE_CIRCLE, SINGLE_CIRCLE}),
    "™": frozenset({DOUBLE_CIRCLE, SINGLE_CIRCLE}),
}


def extract_tier_symbol(text: str) -> str | None:
    match = _TIER_PATTERN.search(text or "")
    if match:
        return match.group(0)
    if (text or "").strip().endswith(" O"):
        return SINGLE_CIRCLE
    return None


def catalog_tier(display: str) -> str | None:
    """Tier of a catalog name; only names carrying a real tier glyph have one."""
    if not any(glyph in display for glyph in TIER_VARIANT_GLYPHS):
        return None
    return extract_tier_symbol(display)


def is_tier_compatible(catalog_tier_symbol: str, parsed_tier: str) -> bool:
    return parsed_tier in TIER_COMPATIBILITY.get(catalog_tier_symbol, frozenset())
