"""Terminal handlers that hand a message to an external system.

The handlers are duck-typed over the client they wrap, so they carry no
dependency on a particular library:

- ``ListPushHandler`` appends to a list store through ``connection.rpush``
  (a ``redis.Redis`` client fits).
- ``EnqueueHandler`` submits a job through any ``enqueue(job, *args)``
  callable (e.g. ``rq.Queue.enqueue``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from runnel.models.context import MESSAGE_KEY, MessageContext, Result

logger = logging.getLogger(__name__)

LIST_PUSH_RESULT_KEY = "runnel.sink.list_push.result"
ENQUEUE_RESULT_KEY = "runnel.sink.enqueue.result"


def _normalize_args(args: Any) -> tuple[Any, ...]:
    if isinstance(args, (list, tuple)):
        return tuple(args)
    return (args,)


def extract_payload(
    context: MessageContext,
    source_key: str = MESSAGE_KEY,
    transform: str | None = None,
    transform_args: Sequence[Any] = (),
) -> Any:
    """Return the context entry at *source_key*, transformed if requested.

    When *transform* names a method the entry has, the method is called
    with *transform_args* and its return value is used instead.
    """
    value = context[source_key]
    if transform is not None and callable(getattr(value, transform, None)):
        value = getattr(value, transform)(*transform_args)
    return value


class ListPushHandler:
    """Appends the message (or a transform of it) to a list in a list store.

    Parameters
    ----------
    connection:
        Client exposing ``rpush(key, value)``.
    key:
        The list to append to.
    source_key:
        Context entry to push.  Defaults to the message.
    transform:
        Optional method name called on the entry before pushing
        (e.g. ``"to_json"``).
    transform_args:
        Arguments for *transform*.
    """

    def __init__(
        self,
        connection: Any,
        key: str,
        *,
        source_key: str = MESSAGE_KEY,
        transform: str | None = None,
        transform_args: Any = (),
    ) -> None:
        self.connection = connection
        self.key = key
        self.source_key = source_key
        self.transform = transform
        self.transform_args = _normalize_args(transform_args)

    def invoke(self, context: MessageContext) -> Result:
        value = extract_payload(context, self.source_key, self.transform, self.transform_args)
        length = self.connection.rpush(self.key, value)
        logger.debug("ListPushHandler: pushed to %s (length=%s)", self.key, length)
        return Result.ok({LIST_PUSH_RESULT_KEY: length})

    def __repr__(self) -> str:
        return f"ListPushHandler(key={self.key!r})"


class EnqueueHandler:
    """Submits a job to an external job system for every message.

    The payload (after the optional transform) becomes the job's
    positional arguments: a list or tuple is spread, any other value is
    passed as the single argument.

    Parameters
    ----------
    enqueue:
        Callable ``enqueue(job, *args)``; its return value is reported
        under ``ENQUEUE_RESULT_KEY``.
    job:
        The job class or function handed to *enqueue*.
    source_key / transform / transform_args:
        As for ``ListPushHandler``.
    """

    def __init__(
        self,
        enqueue: Callable[..., Any],
        job: Any,
        *,
        source_key: str = MESSAGE_KEY,
        transform: str | None = None,
        transform_args: Any = (),
    ) -> None:
        self.enqueue = enqueue
        self.job = job
        self.source_key = source_key
        self.transform = transform
        self.transform_args = _normalize_args(transform_args)

    def invoke(self, context: MessageContext) -> Result:
        payload = extract_payload(context, self.source_key, self.transform, self.transform_args)
        receipt = self.enqueue(self.job, *_normalize_args(payload))
        logger.debug("EnqueueHandler: enqueued %s", getattr(self.job, "__name__", self.job))
        return Result.ok({ENQUEUE_RESULT_KEY: receipt})

    def __repr__(self) -> str:
        return f"EnqueueHandler(job={getattr(self.job, '__name__', self.job)!r})"
