"""
HerbHeal Remedy Copilot – Validation Utilities
===============================================
Validates provider response envelopes against Pydantic schemas.
"""

from __future__ import annotations

import logging
from typing import Any, List, Tuple

from pydantic import ValidationError

from core.errors import MalformedResponseError
from models.extraction.schema_definition import (
    ChatCompletionEnvelope,
    GeminiEnvelope,
    TokenUsage,
)

logger = logging.getLogger(__name__)


def _format_errors(e: ValidationError) -> List[str]:
    errors = []
    for err in e.errors():
        field = ".".join(str(loc) for loc in err["loc"])
        errors.append(f"Validation error at '{field}': {err['msg']}")
    return errors


def parse_chat_completion(payload: Any) -> Tuple[str, TokenUsage]:
    """
    Pull the message text and token usage out of a chat-completion body.

    Raises MalformedResponseError when the envelope is missing fields or the
    message text is empty.
    """
    try:
        envelope = ChatCompletionEnvelope.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponseError(
            "Invalid response from language model: " + "; ".join(_format_errors(e))
        ) from e

    text = envelope.choices[0].message.content
    if not text or not text.strip():
        raise MalformedResponseError("Language model returned an empty message")

    usage = envelope.usage
    tokens = TokenUsage(
        input=max(0, usage.prompt_tokens) if usage else 0,
        output=max(0, usage.completion_tokens) if usage else 0,
    )
    return text, tokens


def parse_gemini_response(payload: Any) -> Tuple[str, TokenUsage]:
    """
    Pull the concatenated candidate text and token usage out of a Gemini body.

    Raises MalformedResponseError when no text part is present.
    """
    try:
        envelope = GeminiEnvelope.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponseError(
            "Invalid response from vision model: " + "; ".join(_format_errors(e))
        ) from e

    parts = envelope.candidates[0].content.parts
    text = "\n".join(p.text for p in parts if p.text)
    if not text.strip():
        raise MalformedResponseError("No response text received from vision model")

    if envelope.usage_metadata:
        tokens = TokenUsage(
            input=max(0, envelope.usage_metadata.prompt_token_count),
            output=max(0, envelope.usage_metadata.candidates_token_count),
        )
    elif envelope.usage:
        tokens = TokenUsage(
            input=max(0, envelope.usage.prompt_tokens),
            output=max(0, envelope.usage.completion_tokens),
        )
    else:
        tokens = TokenUsage()
    return text, tokens


def coerce_confidence(value: Any, default: int = 70) -> int:
    """Safely coerce a confidence score to an int in [0, 100]."""
    try:
        v = int(float(value))
        return max(0, min(100, v))
    except (TypeError, ValueError, OverflowError):
        logger.warning("Could not parse confidence '%s' – defaulting to %d", value, default)
        return default
