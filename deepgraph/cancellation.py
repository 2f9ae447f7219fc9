"""Cooperative cancellation for long-running scans and expansions."""

from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import AnalysisCancelled


class CancelToken:
    """Shared flag checked at traversal and expansion checkpoints.

    A token trips either when :meth:`cancel` is called (from any thread) or
    once *timeout* seconds have elapsed since it was created.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self.reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("timed out")
            return True
        return False

    def check(self) -> None:
        """Raise :class:`AnalysisCancelled` if the token has tripped."""
        if self.is_cancelled:
            raise AnalysisCancelled(self.reason)


def check(token: Optional[CancelToken]) -> None:
    """Checkpoint helper that tolerates a missing token."""
    if token is not None:
        token.check()
