"""
Cancellation context shared by every step of one analysis.
"""
from __future__ import annotations

import threading
import time
from typing import Optional

from pageanalyzer.errors import AnalysisTimeout


class CancelToken:
    """
    Cancellation flag with an optional deadline.

    The token is cancelled either explicitly via ``cancel()`` or implicitly
    once ``timeout`` seconds have passed since construction. Network calls
    bound their own timeout by ``remaining()`` and backoff waits go through
    ``sleep()`` so both return promptly once the token is cancelled.

    A request already in flight cannot be interrupted: ``requests`` offers no
    way to abort a socket read. With a deadline the request timeout is clamped
    to the time left, so it still ends by the deadline. An explicit
    ``cancel()`` without a deadline only stops new requests and backoff waits;
    the one in flight runs until its own ``config.timeout``.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` if there is none."""
        if self._event.is_set():
            return 0.0
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def bound(self, timeout: float) -> float:
        """Clamp a per-request timeout to what is left of the deadline."""
        remaining = self.remaining()
        return timeout if remaining is None else min(timeout, remaining)

    def sleep(self, seconds: float) -> bool:
        """Wait up to ``seconds``; return True if cancelled meanwhile."""
        if seconds > 0:
            self._event.wait(self.bound(seconds))
        return self.cancelled

    def raise_if_cancelled(self, what: str = "analysis") -> None:
        if self.cancelled:
            raise AnalysisTimeout(f"{what} cancelled or deadline exceeded")
