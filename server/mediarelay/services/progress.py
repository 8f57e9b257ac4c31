"""Human-readable progress reporting for UI polling."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Write-mostly observer of orchestration progress."""

    def set_status(self, message: str) -> None:
        ...

    def get_status(self) -> str:
        ...


class InMemoryProgressSink:
    """Process-wide last-status holder.

    Concurrent orchestrations overwrite each other; readers only ever see the
    latest message.
    """

    def __init__(self, initial: str = "Idle") -> None:
        self._status = initial

    def set_status(self, message: str) -> None:
        self._status = message

    def get_status(self) -> str:
        return self._status


def report(sink: Optional[ProgressSink], message: str) -> None:
    """Fire-and-forget write to ``sink``; a failing sink never breaks the caller."""

    if sink is None:
        return
    try:
        sink.set_status(message)
    except Exception:
        logger.exception("Progress sink rejected status update")
