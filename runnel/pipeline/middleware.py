"""Built-in middleware stages.

``TypeFilterStage`` is inserted by the route compiler for sinks that only
accept some message types.  ``FieldTransformStage`` and
``ParameterizeStage`` are general purpose stages for sink declarations::

    def orders_sink(sink):
        sink.use(FieldTransformStage, method="to_json")
        sink.run(ListPushHandler(redis_client, "orders"))
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from runnel.models.context import (
    FILTERED_BY_KEY,
    FILTERED_TYPE_KEY,
    MESSAGE_KEY,
    MessageContext,
    Result,
)
from runnel.pipeline.chain import BaseStage, Handler

logger = logging.getLogger(__name__)


class TypeFilterStage(BaseStage):
    """Passes a context inward only when its message type is allowed.

    A filtered context is not an error: the stage returns an ``OK`` result
    whose metadata names the filter and the rejected type, and the inner
    handler is never called.  Untyped messages never pass a filter and are
    reported with an empty ``filtered_type``.
    """

    def __init__(self, inner: Handler, *allowed: Any) -> None:
        super().__init__(inner)
        self.allowed: frozenset[str] = frozenset(str(value) for value in allowed)

    def invoke(self, context: MessageContext) -> Result:
        message_type = context.message_type
        if message_type in self.allowed:
            return self.inner.invoke(context)

        logger.debug(
            "Filtered %s message on intake %s (allowed: %s)",
            message_type or "untyped",
            context.intake_name,
            sorted(self.allowed),
        )
        return Result.ok(
            {
                FILTERED_BY_KEY: type(self).__name__,
                FILTERED_TYPE_KEY: message_type or "",
            }
        )

    def __repr__(self) -> str:
        return f"TypeFilterStage(allowed={sorted(self.allowed)!r})"


class FieldTransformStage(BaseStage):
    """Replaces one context entry with the result of a method call on it.

    Parameters
    ----------
    inner:
        The handler to call with the transformed context.
    method:
        Name of the method to call on the entry.  Defaults to
        ``model_dump_json`` so typed messages are serialized to JSON.
    args:
        Positional arguments for the method; a non-sequence is treated as
        a single argument.
    key:
        The context entry to transform.  Defaults to the message.
    """

    def __init__(
        self,
        inner: Handler,
        method: str = "model_dump_json",
        args: Any = (),
        key: str = MESSAGE_KEY,
    ) -> None:
        super().__init__(inner)
        self.method = method
        self.args = tuple(args) if isinstance(args, (list, tuple)) else (args,)
        self.key = key

    def invoke(self, context: MessageContext) -> Result:
        value = getattr(context[self.key], self.method)(*self.args)
        return self.inner.invoke(context.evolve({self.key: value}))

    def __repr__(self) -> str:
        return f"FieldTransformStage(method={self.method!r}, key={self.key!r})"


class ParameterizeStage(BaseStage):
    """Replaces one context entry with a list of computed parameters.

    Each value is used as-is, unless it is callable, in which case it is
    called with the current context.  Useful for turning a message into
    the positional arguments a terminal handler expects.
    """

    def __init__(self, inner: Handler, *values: Any, key: str = MESSAGE_KEY) -> None:
        super().__init__(inner)
        self.values = values
        self.key = key

    def invoke(self, context: MessageContext) -> Result:
        params = _resolve(self.values, context)
        return self.inner.invoke(context.evolve({self.key: params}))

    def __repr__(self) -> str:
        return f"ParameterizeStage(values={len(self.values)}, key={self.key!r})"


def _resolve(values: Iterable[Any], context: MessageContext) -> list[Any]:
    return [value(context) if callable(value) else value for value in values]
