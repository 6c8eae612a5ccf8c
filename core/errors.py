"""
HerbHeal Remedy Copilot – Error Types
======================================
Only ImageReadError and TranslationError are meant to reach the caller;
the pipeline converts the rest into degraded results.
"""

from __future__ import annotations

from typing import Optional


class HerbHealError(Exception):
    """Base class for pipeline errors."""


class ImageReadError(HerbHealError, OSError):
    """The uploaded image could not be read, so identification is impossible."""

    # Set by the pipeline before re-raising.
    run_id: Optional[str] = None
    state: Optional[str] = None


class TransportError(HerbHealError):
    """An outbound model call failed after the retry policy gave up."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        failure: Optional[str] = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.failure = failure
        self.attempts = attempts


class MalformedResponseError(HerbHealError, ValueError):
    """A model answered, but the envelope or text payload was unusable."""


class TranslationError(HerbHealError):
    """Translation failed; never masked with untranslated text."""
