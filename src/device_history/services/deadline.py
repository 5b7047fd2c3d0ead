"""Deadline and cancellation signal shared by concurrent aggregations."""

from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import DeadlineExceeded


class Deadline:
    """A monotonic expiry plus a cancellation flag safe to share across threads."""

    def __init__(self, timeout_seconds: Optional[float]) -> None:
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._expires_at = None if timeout_seconds is None else time.monotonic() + timeout_seconds
        self._cancelled = threading.Event()

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(None)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left, ``None`` when unbounded, never negative."""

        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self, stage: str = "") -> None:
        """Raise ``DeadlineExceeded`` if the work should stop now."""

        if self.cancelled:
            raise DeadlineExceeded(f"Aggregation cancelled{_at(stage)}")
        if self.expired:
            raise DeadlineExceeded(f"Aggregation deadline exceeded{_at(stage)}")


def _at(stage: str) -> str:
    return f" during {stage}" if stage else ""
