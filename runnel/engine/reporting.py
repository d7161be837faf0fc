"""Outcome reporting sinks for success and error results.

Runners push results concurrently, so every sink here is safe to call from
many threads at once.
"""

from __future__ import annotations

import logging
import queue
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from runnel.models.context import EXCEPTION_KEY, INTAKE_KEY, Result

logger = logging.getLogger(__name__)


@runtime_checkable
class OutcomeSink(Protocol):
    """Protocol for outcome reporting; the return value is ignored."""

    def push(self, result: Result) -> Any:
        ...


class QueueOutcomeSink:
    """Collects results in a thread-safe ``queue.Queue``."""

    def __init__(self, maxsize: int = 0) -> None:
        self.queue: queue.Queue[Result] = queue.Queue(maxsize=maxsize)

    def push(self, result: Result) -> None:
        self.queue.put(result)

    def get(self, timeout: float | None = None) -> Result:
        """Block until a result is available (or *timeout* expires)."""
        return self.queue.get(timeout=timeout)

    def drain(self) -> list[Result]:
        """Return and remove every result currently queued."""
        results: list[Result] = []
        while True:
            try:
                results.append(self.queue.get_nowait())
            except queue.Empty:
                return results


class LoggingOutcomeSink:
    """Writes each result to a logger; errors include the caught exception."""

    def __init__(self, level: int = logging.INFO, name: str = __name__) -> None:
        self.level = level
        self._logger = logging.getLogger(name)

    def push(self, result: Result) -> None:
        status, metadata, _body = result
        exc = metadata.get(EXCEPTION_KEY)
        if exc is not None:
            self._logger.log(
                self.level,
                "status=%s intake=%s exception=%r",
                status,
                metadata.get(INTAKE_KEY),
                exc,
            )
        else:
            self._logger.log(self.level, "status=%s metadata=%s", status, metadata)


class CallbackOutcomeSink:
    """Adapts a plain callable to the ``OutcomeSink`` protocol."""

    def __init__(self, callback: Callable[[Result], Any]) -> None:
        self.callback = callback

    def push(self, result: Result) -> None:
        self.callback(result)
