"""Work-deferral facilities — where Runner tasks actually execute.

Defines the ``Deferrer`` protocol the dispatch engine depends on, with two
implementations:

1. **ImmediateDeferrer**: runs each task inline on the calling thread.
   Deterministic; used by tests and the CLI.
2. **ThreadPoolDeferrer**: hands tasks to a
   ``concurrent.futures.ThreadPoolExecutor`` so ``publish`` returns at once.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol, runtime_checkable

from runnel.core.errors import DeferralError

logger = logging.getLogger(__name__)

Task = Callable[[], Any]


@runtime_checkable
class Deferrer(Protocol):
    """Protocol for work-deferral backends.

    ``defer`` must return without waiting for *task*; the backend runs it
    at most once, on any thread, at some later time.
    """

    def defer(self, task: Task) -> None:
        ...


class ImmediateDeferrer:
    """Runs every task synchronously, at the moment it is deferred."""

    def defer(self, task: Task) -> None:
        task()


class ThreadPoolDeferrer:
    """Runs tasks on a bounded thread pool.

    Parameters
    ----------
    max_workers:
        Upper bound on concurrently executing tasks.
    thread_name_prefix:
        Prefix for worker thread names, handy in log output.
    """

    def __init__(self, max_workers: int = 8, thread_name_prefix: str = "runnel") -> None:
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._pending: set[Future[Any]] = set()
        self._lock = threading.Lock()
        self._closed = False

    def defer(self, task: Task) -> None:
        """Submit *task* to the pool.

        Raises
        ------
        DeferralError
            If the deferrer has been shut down.
        """
        with self._lock:
            if self._closed:
                raise DeferralError("ThreadPoolDeferrer is shut down")
            future = self._executor.submit(task)
            self._pending.add(future)
        future.add_done_callback(self._task_done)

    def _task_done(self, future: Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error("Deferred task raised: %s", future.exception())

    @property
    def pending_count(self) -> int:
        """Number of submitted tasks that have not finished yet."""
        with self._lock:
            return len(self._pending)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with *wait*, block until queued tasks finish."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
        logger.debug("ThreadPoolDeferrer shut down (wait=%s)", wait)

    def __enter__(self) -> ThreadPoolDeferrer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown(wait=True)
