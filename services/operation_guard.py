"""In-progress flags that reject re-entry of the same operation kind."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Set


class OperationInProgressError(RuntimeError):
    """Raised when an operation is started while the same kind is still running."""


class OperationGuard:
    """Track which operation kinds are running.

    A second `hold()` of a kind that is already held yields False instead of
    waiting; different kinds never block each other.
    """

    def __init__(self) -> None:
        self._running: Set[str] = set()

    def is_running(self, kind: str) -> bool:
        return kind in self._running

    @asynccontextmanager
    async def hold(self, kind: str) -> AsyncIterator[bool]:
        if kind in self._running:
            yield False
            return
        self._running.add(kind)
        try:
            yield True
        finally:
            self._running.discard(kind)
