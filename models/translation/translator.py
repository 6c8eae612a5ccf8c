"""
HerbHeal Remedy Copilot – Remedy Translator
============================================
Stage 3 (optional): Translates remedy text with the language model.

English is a pass-through with no network call. Any other failure is raised
as TranslationError; a failed translation is never replaced with the
untranslated text.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from core.errors import HerbHealError, TranslationError
from core.transport import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, RetryingTransport
from core.validation import parse_chat_completion
from models.remedy.remedy_generator import DEFAULT_REMEDY_MODEL, PERPLEXITY_URL

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

LANGUAGE_NAMES = {
    "hi": "Hindi (हिंदी)",
    "ta": "Tamil (தமிழ்)",
    "te": "Telugu (తెలుగు)",
    "bn": "Bengali (বাংলা)",
    "mr": "Marathi (मराठी)",
    "en": "English",
}

TRANSLATION_SYSTEM_PROMPT = (
    "You are an expert translator specializing in medical and Ayurvedic texts. Provide "
    "accurate translations that maintain the technical and cultural nuances of the "
    "original text."
)

TRANSLATION_USER_PROMPT = """Translate the following Ayurvedic remedy text into {language}.
Keep all the medical terms accurate and maintain the cultural context of Ayurveda.
Make sure the translation is clear and easy to understand for native speakers.

Original text:
{text}

Translated text in {language}:"""


def language_display_name(code: str) -> str:
    """Unknown codes are passed through as their own display name."""
    return LANGUAGE_NAMES.get(code, code)


class Translator:
    """Translation stage backed by the same chat endpoint as remedy generation."""

    def __init__(
        self,
        transport: RetryingTransport,
        endpoint_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: str = DEFAULT_REMEDY_MODEL,
        max_tokens: int = 800,
        temperature: float = 0.1,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        **_,
    ):
        self.api_key = api_key or os.environ.get("PERPLEXITY_API_KEY")
        if not self.api_key:
            raise EnvironmentError(
                "PERPLEXITY_API_KEY is not set. "
                "Add it to your .env file or pass api_key= to Translator()."
            )
        self.transport = transport
        self.endpoint_url = endpoint_url or PERPLEXITY_URL
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.max_attempts = max_attempts

    def translate(self, text: str, target_language: str = DEFAULT_LANGUAGE) -> str:
        """
        Translate ``text`` into ``target_language`` (ISO 639-1 code).

        Raises
        ------
        TranslationError – the model could not be reached or answered badly.
        """
        if target_language == DEFAULT_LANGUAGE:
            return text

        language = language_display_name(target_language)
        logger.info("Translating remedy to %s", language)

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": TRANSLATION_SYSTEM_PROMPT},
                {"role": "user", "content": TRANSLATION_USER_PROMPT.format(language=language, text=text)},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        try:
            outcome = self.transport.call(
                self.endpoint_url,
                payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
                max_attempts=self.max_attempts,
            )
            outcome.raise_for_failure("Translation")
            translated, _ = parse_chat_completion(outcome.payload)
        except HerbHealError as e:
            logger.error("Translation to %s failed: %s", target_language, e)
            raise TranslationError(f"Failed to translate to {target_language}: {e}") from e

        logger.info("Translation completed for %s", target_language)
        return translated
