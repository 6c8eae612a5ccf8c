"""
HerbHeal Remedy Copilot – Gemini Herb Identifier
=================================================
Stage 1: Sends the uploaded photograph to the Gemini vision model and turns
its free-text answer into a HerbIdentity.

Fails only in two ways, both left to the orchestrator:
  - ImageReadError         the image cannot be read (fatal, never masked)
  - TransportError /
    MalformedResponseError the model could not be reached or answered badly
"""

from __future__ import annotations

import base64
import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from core.errors import ImageReadError
from core.transport import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, RetryingTransport
from core.validation import parse_gemini_response
from models.extraction.herb_extractor import HerbExtractor
from models.extraction.schema_definition import AiMetadata, HerbIdentity, PatientProfile

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_VISION_MODEL = "gemini-1.5-flash"

# ── Identification Prompt ───────────────────────────────────────────────────

IDENTIFICATION_PROMPT = """Analyze this image and identify the herb, plant, or botanical item shown.

Please provide the response in this exact format:

HERB NAME: [Common name of the herb/plant]
SCIENTIFIC NAME: [Scientific/botanical name if recognizable]
SANSKRIT NAME: [Sanskrit name if known]
CONFIDENCE: [Your confidence level from 1-100]
DESCRIPTION: [Brief description of what you see - color, form, parts visible]
AYURVEDIC PROPERTIES: [If known - rasa, virya, vipaka, prabhava]

Example:
HERB NAME: Turmeric
SCIENTIFIC NAME: Curcuma longa
SANSKRIT NAME: Haridra
CONFIDENCE: 95
DESCRIPTION: Yellow-orange rhizome powder
AYURVEDIC PROPERTIES: Rasa: Tikta, Katu; Virya: Ushna; Vipaka: Katu

Focus on identifying medicinal herbs, spices, or plant materials commonly used in traditional medicine."""


def read_image(image_path: Union[str, Path]) -> Tuple[str, str]:
    """
    Read an image and return (base64_data, mime_type).

    The media type comes from the file extension; ``jpg`` is normalised to
    ``jpeg``. Raises ImageReadError when the file is missing or unreadable.
    """
    path = Path(image_path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ImageReadError(f"Image file could not be read: {image_path} ({e})") from e

    ext = path.suffix.lstrip(".").lower()
    if ext == "jpg":
        ext = "jpeg"
    mime_type = f"image/{ext or 'jpeg'}"
    return base64.b64encode(raw).decode("ascii"), mime_type


class HerbIdentifier:
    """Herb identification stage backed by the Gemini generateContent API."""

    service = "gemini"

    def __init__(
        self,
        transport: RetryingTransport,
        endpoint_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: str = DEFAULT_VISION_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        extractor: Optional[HerbExtractor] = None,
        **_,  # absorb extra keys from config dicts
    ):
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        if not self.api_key:
            raise EnvironmentError(
                "GEMINI_API_KEY is not set. "
                "Add it to your .env file or pass api_key= to HerbIdentifier()."
            )
        self.transport = transport
        self.model = model
        self.endpoint_url = endpoint_url or f"{GEMINI_BASE_URL}/{model}:generateContent"
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.extractor = extractor or HerbExtractor()

    # ── Request building ────────────────────────────────────────────────

    def build_request(self, image_b64: str, mime_type: str) -> dict:
        return {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": mime_type, "data": image_b64}},
                        {"text": IDENTIFICATION_PROMPT},
                    ]
                }
            ]
        }

    # ── Public API ──────────────────────────────────────────────────────

    def identify(
        self,
        image_path: Union[str, Path],
        condition: Optional[str] = None,
        profile: Optional[PatientProfile] = None,
    ) -> HerbIdentity:
        """
        Identify the herb shown in ``image_path``.

        ``condition`` and ``profile`` are accepted for symmetry with the other
        stages; the vision prompt depends on the image alone.
        """
        image_b64, mime_type = read_image(image_path)
        logger.info(
            "Identifying herb from %s (%s, %d base64 chars)",
            Path(image_path).name, mime_type, len(image_b64),
        )

        outcome = self.transport.call(
            self.endpoint_url,
            self.build_request(image_b64, mime_type),
            headers={"x-goog-api-key": self.api_key},
            timeout=self.timeout,
            max_attempts=self.max_attempts,
        )
        outcome.raise_for_failure("Herb identification")

        text, tokens = parse_gemini_response(outcome.payload)
        logger.debug("Vision raw output: %s", text[:500])

        identity = self.extractor.extract(
            text,
            ai_metadata=AiMetadata(model=self.model, service=self.service, tokens=tokens),
        )
        logger.info(
            "Identified herb: %s (confidence %d)", identity.name.common, identity.confidence
        )
        return identity
