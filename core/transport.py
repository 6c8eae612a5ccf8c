"""
HerbHeal Remedy Copilot – Retrying Transport
=============================================
Executes one outbound JSON POST with a bounded retry policy.

  - HTTP 429 and 5xx are transient: retried with exponential backoff
    (2s, 4s, 8s, ... between attempts).
  - Any other 4xx, connection/DNS failures and timeouts are fatal and
    returned immediately.

The transport never raises for a failed call; it returns a RetryOutcome
and leaves the decision to the stage that owns the request.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

import requests

from models.extraction.schema_definition import FailureKind, RetryOutcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_ATTEMPTS = 3
_SMALL_BODY_BYTES = 100


def exponential_backoff(attempt: int) -> float:
    """Seconds to wait after failed attempt ``attempt`` (1-based)."""
    return float(2 ** attempt)


def is_transient(kind: Optional[FailureKind]) -> bool:
    return kind in (FailureKind.RATE_LIMITED, FailureKind.SERVER_ERROR)


def classify_status(status_code: int) -> Optional[FailureKind]:
    """Map an HTTP status to a failure kind (None for 2xx/3xx)."""
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if 500 <= status_code < 600:
        return FailureKind.SERVER_ERROR
    if 400 <= status_code < 500:
        return FailureKind.CLIENT_ERROR
    return None


class RetryPolicy:
    """Max attempts, backoff schedule and retryability predicate."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: Callable[[int], float] = exponential_backoff,
        is_retryable: Callable[[Optional[FailureKind]], bool] = is_transient,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.is_retryable = is_retryable

    @classmethod
    def from_config(cls, config: dict) -> "RetryPolicy":
        base = float(config.get("backoff_base", 2))
        return cls(
            max_attempts=int(config.get("max_attempts", DEFAULT_MAX_ATTEMPTS)),
            backoff=lambda attempt: base ** attempt,
        )


class RetryingTransport:
    """Stateless apart from its injected session; safe to share across runs."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self.session = session or requests.Session()
        self.sleep = sleep

    # ── Single attempt ──────────────────────────────────────────────────

    def _attempt(self, endpoint: str, payload: dict, headers: dict, timeout: float) -> RetryOutcome:
        try:
            response = self.session.post(endpoint, json=payload, headers=headers, timeout=timeout)
        except requests.exceptions.Timeout as e:
            return RetryOutcome(ok=False, error=f"Request timed out: {e}", failure=FailureKind.TIMEOUT)
        except requests.exceptions.RequestException as e:
            return RetryOutcome(ok=False, error=f"Network error: {e}", failure=FailureKind.NETWORK)

        status = response.status_code
        body_text = response.text or ""
        kind = classify_status(status)
        if kind is not None:
            return RetryOutcome(
                ok=False,
                status_code=status,
                text=body_text,
                error=f"HTTP {status}: {body_text[:200]}",
                failure=kind,
            )

        if not body_text.strip():
            logger.warning("Empty response body received from %s", _redact(endpoint))
        elif len(body_text) < _SMALL_BODY_BYTES:
            logger.warning(
                "Response body seems unusually small (%d bytes)", len(body_text)
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            return RetryOutcome(
                ok=False,
                status_code=status,
                text=body_text,
                error=f"Response body is not JSON: {e}",
                failure=FailureKind.INVALID_BODY,
            )

        return RetryOutcome(ok=True, status_code=status, payload=data, text=body_text)

    # ── Public API ──────────────────────────────────────────────────────

    def call(
        self,
        endpoint: str,
        payload: dict,
        headers: Optional[dict] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: Optional[int] = None,
    ) -> RetryOutcome:
        """
        POST ``payload`` to ``endpoint`` under the retry policy.

        Parameters
        ----------
        endpoint : str
            Full URL of the model endpoint.
        payload : dict
            JSON request body.
        headers : dict, optional
            Extra request headers (auth, content type).
        timeout : float
            Per-attempt timeout in seconds.
        max_attempts : int, optional
            Overrides the policy's attempt budget for this call. Values below 1
            raise ValueError.

        Returns
        -------
        RetryOutcome – success payload, or the last failure with the attempt
        count and the backoff delays actually slept.
        """
        attempts_allowed = self.policy.max_attempts if max_attempts is None else max_attempts
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1")
        headers = {"Content-Type": "application/json", **(headers or {})}
        delays = []
        outcome = RetryOutcome(ok=False, error="No attempt made")

        for attempt in range(1, attempts_allowed + 1):
            logger.info(
                "Calling %s (attempt %d/%d)", _redact(endpoint), attempt, attempts_allowed
            )
            outcome = self._attempt(endpoint, payload, headers, timeout)
            outcome.attempts = attempt
            outcome.delays = list(delays)
            outcome.elapsed_backoff = sum(delays)

            if outcome.ok:
                logger.info("Call succeeded on attempt %d", attempt)
                return outcome

            logger.warning(
                "Attempt %d/%d failed (%s): %s",
                attempt, attempts_allowed,
                outcome.failure.value if outcome.failure else "unknown",
                outcome.error,
            )

            if not self.policy.is_retryable(outcome.failure):
                return outcome

            if attempt < attempts_allowed:
                delay = self.policy.backoff(attempt)
                logger.info("Retrying in %.1fs", delay)
                self.sleep(delay)
                delays.append(delay)

        logger.error("All %d attempts failed for %s", attempts_allowed, _redact(endpoint))
        return outcome


def _redact(url: str) -> str:
    """Drop the query string so keys passed as parameters never reach the logs."""
    return url.split("?", 1)[0]
