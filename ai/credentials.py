"""Thread-safe API credential holder.

Providers read the key on every request while operators may rotate it at any
time from another thread. Reads share the lock; a write waits for in-flight
reads to finish and blocks new ones until it has stored the new value.
"""
from __future__ import annotations

import logging
import threading

from utils.text import mask_secret


class _ReadWriteLock:
    """Minimal writer-preferring read/write lock built on ``threading.Condition``."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


class CredentialHolder:
    """Holds a single API key that may be replaced at runtime."""

    def __init__(self, value: str = "") -> None:
        self._lock = _ReadWriteLock()
        self._value = value.strip()

    def get(self) -> str:
        self._lock.acquire_read()
        try:
            return self._value
        finally:
            self._lock.release_read()

    def set(self, value: str) -> None:
        """Replace the stored key. Surrounding whitespace is dropped."""
        cleaned = (value or "").strip()
        self._lock.acquire_write()
        try:
            self._value = cleaned
        finally:
            self._lock.release_write()
        logging.info("credentials.updated masked=%s", mask_secret(cleaned) or "<hidden>")

    @property
    def is_set(self) -> bool:
        return bool(self.get())
