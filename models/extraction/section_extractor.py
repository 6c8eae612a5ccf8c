"""
HerbHeal Remedy Copilot – Remedy Section Extractor
===================================================
Pulls labelled paragraphs (preparation, dosage, diet, precautions,
timeline, ...) out of free-text remedy output.

Paragraphs are split on blank lines. For each section the first paragraph
containing any of its keywords (case-insensitive substring) is returned,
cut to the section's max length with a trailing "..." when longer.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Tuple

from models.extraction.schema_definition import RemedySections

logger = logging.getLogger(__name__)

ELLIPSIS = "..."

# section -> (keywords, max_length)
SECTION_RULES: Dict[str, Tuple[Tuple[str, ...], int]] = {
    "preparation": (("preparation", "method", "prepare"), 150),
    "dosage": (("dosage", "administration", "take"), 100),
    "dietary": (("diet", "food", "avoid", "include"), 100),
    "precautions": (("precaution", "contraindication", "side effect", "avoid"), 100),
    "timeline": (("result", "timeline", "expect", "improvement"), 80),
    "lifestyle": (("lifestyle", "routine", "sleep", "exercise"), 100),
    "yoga": (("yoga", "pranayama", "asana"), 100),
}

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n+")


def split_paragraphs(text: str):
    return [p for p in _PARAGRAPH_BREAK.split(text or "") if p.strip()]


def extract_section(text: str, keywords: Iterable[str], max_length: int = 100) -> str:
    """Return the first paragraph mentioning any keyword, or ""."""
    keywords = [k.lower() for k in keywords if k]
    if not text or not keywords:
        return ""

    for paragraph in split_paragraphs(text):
        lowered = paragraph.lower()
        if any(k in lowered for k in keywords):
            if len(paragraph) > max_length:
                return paragraph[:max_length] + ELLIPSIS
            return paragraph
    return ""


def extract_sections(text: str) -> RemedySections:
    """Run every SECTION_RULES entry over ``text``. Never raises."""
    found = {
        name: extract_section(text, keywords, max_length)
        for name, (keywords, max_length) in SECTION_RULES.items()
    }
    logger.debug(
        "Remedy sections found: %s", [name for name, value in found.items() if value]
    )
    return RemedySections(**found)
