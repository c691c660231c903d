"""Cooperative cancellation shared between a caller and a running fetch."""

from __future__ import annotations

import threading
import time
from typing import Optional


class CancellationToken:
    """Thread-safe cancellation flag.

    Waiting on the token doubles as an interruptible sleep, so every delay in
    a fetch (page spacing, retry backoff) wakes up as soon as ``cancel`` is
    called from another thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled


def pause(seconds: float, token: Optional[CancellationToken] = None) -> bool:
    """Sleep for ``seconds`` honouring an optional token.

    Returns:
        True if the token fired before or during the pause
    """
    if token is not None:
        return token.wait(seconds)
    if seconds > 0:
        time.sleep(seconds)
    return False
