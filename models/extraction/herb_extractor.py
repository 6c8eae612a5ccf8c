"""
HerbHeal Remedy Copilot – Herb Identity Extractor
==================================================
Turns free-text vision-model output into a structured HerbIdentity.

The common name comes from an ordered cascade of pure strategies
(``text -> Optional[Candidate]``); the first one that yields a candidate wins:

  1. labeled_name           "HERB NAME: Turmeric"                   → 85
  2. natural_language_name  "appears to be turmeric", "jar of honey" → 75
  3. capitalized_name       first plausible Capitalized token        → 65
  4. (default)              "Unknown Herb"                           → 70

Scientific name, explicit CONFIDENCE, Ayurvedic properties and Sanskrit
name are extracted independently of the cascade. Extraction never raises.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, NamedTuple, Optional, Sequence

from core.validation import coerce_confidence
from models.extraction.schema_definition import (
    UNKNOWN_HERB,
    AiMetadata,
    HerbIdentity,
    HerbName,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 70
LABELED_CONFIDENCE = 85
NATURAL_LANGUAGE_CONFIDENCE = 75
CAPITALIZED_CONFIDENCE = 65

STOP_WORDS = frozenset({
    "the", "an", "a", "this", "that", "image", "picture", "photo",
    "not", "rather", "but", "however",
})

# Words that end a natural-language candidate ("turmeric in a bowl" → "turmeric").
_BREAK_WORDS = frozenset({
    "and", "or", "in", "on", "with", "from", "of", "is", "are", "which",
    "than", "as", "at", "for", "to",
}) | STOP_WORDS

CAPITALIZED_DENYLIST = frozenset({
    "Image", "Please", "However", "Unfortunately", "Description",
    "Scientific", "Name", "Based", "Looking",
})

_LABEL_TAIL = r"[ \t]*[*_]*[ \t]*:[ \t]*([^\n\r]+)"

_LABELED_NAME = re.compile(r"(?:ITEM|HERB)\s+NAME" + _LABEL_TAIL, re.IGNORECASE)
_SCIENTIFIC_LABEL = re.compile(r"SCIENTIFIC\s+NAME" + _LABEL_TAIL, re.IGNORECASE)
_SANSKRIT_LABEL = re.compile(r"SANSKRIT\s+NAME" + _LABEL_TAIL, re.IGNORECASE)
_PROPERTIES_LABEL = re.compile(r"AYURVEDIC\s+PROPERTIES" + _LABEL_TAIL, re.IGNORECASE)
_CONFIDENCE_LABEL = re.compile(r"CONFIDENCE[ \t]*[*_]*[ \t]*:[ \t]*[*_]*[ \t]*(\d+)", re.IGNORECASE)

_SCIENTIFIC_PHRASE = re.compile(r"(?i:scientific)[^:\n]*?:?\s*([A-Z][a-z]+\s+[a-z]+)")
_BINOMIAL_IN_PARENS = re.compile(r"\(([A-Z][a-z]+\s+[a-z]+)\)")

_ARTICLE = r"(?:(?:a|an|the|some)\s+)?"
_PHRASE = r"([a-z]+(?:[ \t]+[a-z]+){0,2})"
_NATURAL_PATTERNS = (
    re.compile(r"\b(?:jar|bottle|container)\s+of\s+" + _ARTICLE + _PHRASE, re.IGNORECASE),
    re.compile(r"\b(?:this\s+is|appears\s+to\s+be|looks\s+like|identified\s+as)\s+" + _ARTICLE + _PHRASE, re.IGNORECASE),
    re.compile(r"\b(?:see|seeing|image\s+shows)\s+" + _ARTICLE + _PHRASE, re.IGNORECASE),
)

_CAPITALIZED = re.compile(r"\b([A-Z][a-z]+)(?:[ \t]+([a-z]+))?\b")


class Candidate(NamedTuple):
    name: str
    confidence: int
    strategy: str


Strategy = Callable[[str], Optional[Candidate]]


# ── Sanitising ──────────────────────────────────────────────────────────────


def sanitize(value: str) -> str:
    """Strip brackets, markdown emphasis and leading punctuation."""
    value = re.sub(r"[\[\]]", "", value or "")
    value = re.sub(r"[*_`]+", "", value)
    value = re.sub(r"^[:\-\s]+", "", value)
    return value.strip()


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def _labeled_value(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return sanitize(match.group(1)) if match else ""


# ── Name strategies ─────────────────────────────────────────────────────────


def labeled_name(text: str) -> Optional[Candidate]:
    name = _labeled_value(_LABELED_NAME, text)
    if not name:
        return None
    return Candidate(name, LABELED_CONFIDENCE, "labeled")


def _trim_phrase(phrase: str) -> str:
    words = phrase.split()
    kept = []
    for i, word in enumerate(words):
        if i > 0 and word.lower() in _BREAK_WORDS:
            break
        kept.append(word)
    return " ".join(kept)


def natural_language_name(text: str) -> Optional[Candidate]:
    for pattern in _NATURAL_PATTERNS:
        for match in pattern.finditer(text):
            candidate = sanitize(_trim_phrase(match.group(1)))
            if len(candidate) <= 2:
                continue
            if candidate.lower() in STOP_WORDS or candidate.split()[0].lower() in STOP_WORDS:
                continue
            return Candidate(candidate.title(), NATURAL_LANGUAGE_CONFIDENCE, "natural_language")
    return None


def capitalized_name(text: str) -> Optional[Candidate]:
    for match in _CAPITALIZED.finditer(text):
        head = match.group(1)
        if head in CAPITALIZED_DENYLIST or len(head) < 4:
            continue
        candidate = sanitize(match.group(0))
        if candidate:
            return Candidate(candidate, CAPITALIZED_CONFIDENCE, "capitalized")
    return None


DEFAULT_STRATEGIES: Sequence[Strategy] = (
    labeled_name,
    natural_language_name,
    capitalized_name,
)


# ── Independent fields ──────────────────────────────────────────────────────


def extract_scientific_name(text: str) -> str:
    labeled = _labeled_value(_SCIENTIFIC_LABEL, text)
    if labeled:
        return labeled
    match = _SCIENTIFIC_PHRASE.search(text) or _BINOMIAL_IN_PARENS.search(text)
    return sanitize(match.group(1)) if match else ""


def extract_confidence(text: str) -> Optional[int]:
    match = _CONFIDENCE_LABEL.search(text)
    if not match:
        return None
    return coerce_confidence(match.group(1))


# ── Extractor ───────────────────────────────────────────────────────────────


class HerbExtractor:
    """Runs the name cascade plus the independent field extractors."""

    def __init__(self, strategies: Optional[Sequence[Strategy]] = None):
        self.strategies = tuple(strategies) if strategies is not None else tuple(DEFAULT_STRATEGIES)

    def best_candidate(self, text: str) -> Candidate:
        for strategy in self.strategies:
            try:
                candidate = strategy(text)
            except Exception as e:
                logger.error("Name strategy %s failed: %s", getattr(strategy, "__name__", strategy), e)
                continue
            if candidate is not None and candidate.name:
                logger.info("Herb name found by %s strategy: %s", candidate.strategy, candidate.name)
                return candidate
        logger.info("No herb name found – using default")
        return Candidate(UNKNOWN_HERB, DEFAULT_CONFIDENCE, "default")

    def extract(self, raw_text: Optional[str], ai_metadata: Optional[AiMetadata] = None) -> HerbIdentity:
        """
        Build a HerbIdentity from raw model text.

        Parameters
        ----------
        raw_text : str
            Free-text response of the vision model. None is treated as "".
        ai_metadata : AiMetadata, optional
            Attached to the identity unchanged.

        Returns
        -------
        HerbIdentity – confidence always in [0, 100], common name never empty.
        """
        text = raw_text if isinstance(raw_text, str) else ""

        candidate = self.best_candidate(text)
        confidence = candidate.confidence
        explicit = extract_confidence(text)
        if explicit is not None:
            confidence = explicit

        common = candidate.name or UNKNOWN_HERB
        identity = HerbIdentity(
            generated_id=slugify(common),
            name=HerbName(
                common=common,
                scientific=extract_scientific_name(text),
                sanskrit=_labeled_value(_SANSKRIT_LABEL, text),
            ),
            confidence=coerce_confidence(confidence),
            description=text,
            properties=_labeled_value(_PROPERTIES_LABEL, text),
            alternative_matches=[],
            ai_metadata=ai_metadata,
        )
        logger.debug(
            "Extraction result: %r (%r) – confidence %d",
            identity.name.common, identity.name.scientific, identity.confidence,
        )
        return identity


def extract_herb_info(raw_text: Optional[str]) -> HerbIdentity:
    """Module-level convenience wrapper around the default extractor."""
    return HerbExtractor().extract(raw_text)
