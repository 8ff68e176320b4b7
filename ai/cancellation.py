"""Cooperative cancellation for provider calls."""
from __future__ import annotations

import threading
from typing import Optional

from ai.errors import DecisionCancelledError


class CancellationToken:
    """Signals that the caller no longer wants a result.

    The token is checked before each attempt, during retry backoff and while
    an HTTP request is in flight. Once cancelled it stays cancelled.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise DecisionCancelledError("operation cancelled")
