"""Exception hierarchy for the AI decision pipeline.

Every failure the pipeline can surface maps to exactly one of these types so
callers (the per-symbol scheduler) can log and skip a cycle without having to
inspect error strings.
"""
from __future__ import annotations

from typing import Optional


class DecisionError(Exception):
    """Base class for all decision pipeline errors."""


class ConfigurationError(DecisionError):
    """Raised when a provider is missing required configuration.

    Examples: no API key configured, unknown provider name. Never retried and
    never reaches the network.
    """


class TransportError(DecisionError):
    """Raised when the HTTP exchange with the LLM backend fails.

    ``retryable`` forces the classification when set; when left as ``None``
    the retry classifier inspects the chained cause and the message text.
    """

    def __init__(self, message: str, *, retryable: Optional[bool] = None) -> None:
        super().__init__(message)
        self.retryable = retryable


class HTTPStatusError(TransportError):
    """The backend answered with an HTTP error status (>= 400)."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"http status {status_code}", retryable=False)
        self.status_code = status_code
        self.body = body


class RetryExhaustedError(TransportError):
    """All attempts failed with retryable errors."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        super().__init__(
            f"request failed after {attempts} attempts: {last_error}",
            retryable=False,
        )
        self.attempts = attempts
        self.last_error = last_error


class ProviderBusinessError(DecisionError):
    """The backend returned an explicit error payload or no choices."""


class ResponseParseError(DecisionError):
    """Model output could not be turned into a structured object.

    ``content`` keeps the (bounded) text that was attempted so the failure can
    be diagnosed from logs alone.
    """

    def __init__(self, message: str, content: str = "") -> None:
        super().__init__(message)
        self.content = content


class DecisionValidationError(DecisionError):
    """A parsed decision violates a hard risk constraint."""


class DecisionCancelledError(DecisionError):
    """The caller cancelled the request while it was waiting."""
