"""Middleware chains — ordered stages composed around one terminal handler.

A chain is declared as an ordered list of ``StageSpec`` (a stage factory
plus its arguments) and a terminal handler.  ``compose`` folds the list
from the right: the last declared stage wraps the terminal first and the
first declared stage ends up outermost, so stages run in declaration order
on the way in.

Every stage is built with its inner handler as the first constructor
argument and exposes ``invoke(context) -> Result``.  A stage either calls
its inner handler (optionally with an evolved context) or returns its own
result without calling it.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from runnel.models.context import MessageContext, Result


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Handler(Protocol):
    """Anything that turns a context into a ``Result``.

    Terminal handlers and stages share this contract; a stage additionally
    holds the inner handler it delegates to.
    """

    def invoke(self, context: MessageContext) -> Result:
        ...


StageFactory = Callable[..., Any]


class BaseStage:
    """Convenience base for stages: stores ``inner`` and delegates by default."""

    def __init__(self, inner: Handler) -> None:
        self.inner = inner

    def invoke(self, context: MessageContext) -> Result:
        return self.inner.invoke(context)

    def __call__(self, context: MessageContext) -> Result:
        return self.invoke(context)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FunctionHandler:
    """Adapts a plain ``(context) -> Result`` callable to the Handler protocol."""

    def __init__(self, func: Callable[[MessageContext], Result]) -> None:
        self.func = func

    def invoke(self, context: MessageContext) -> Result:
        return self.func(context)

    def __call__(self, context: MessageContext) -> Result:
        return self.func(context)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.func, '__name__', self.func)!r})"


def as_handler(obj: Any) -> Handler:
    """Return *obj* as a Handler, wrapping plain callables.

    Classes are rejected: a handler class must be instantiated first.
    """
    if isinstance(obj, type):
        raise TypeError(f"{obj.__name__} is a class, not a handler: pass an instance")
    if isinstance(obj, Handler):
        return obj
    if callable(obj):
        return FunctionHandler(obj)
    raise TypeError(
        f"{obj!r} is not a handler: expected an invoke(context) method or a callable"
    )


def noop_handler(context: MessageContext) -> Result:
    """Default terminal handler: succeeds without doing anything."""
    return Result.ok()


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


class StageSpec(BaseModel):
    """One declared stage: its factory plus the extra constructor arguments."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    factory: Any
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return getattr(self.factory, "__name__", repr(self.factory))

    def build(self, inner: Handler) -> Handler:
        """Instantiate the stage around *inner*."""
        return as_handler(self.factory(inner, *self.args, **self.kwargs))


class ChainSpec(BaseModel):
    """A complete chain declaration: ordered stages and a terminal handler."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stages: tuple[StageSpec, ...] = ()
    terminal: Any = noop_handler


# ---------------------------------------------------------------------------
# Compiled form
# ---------------------------------------------------------------------------


class CompiledPipeline:
    """An immutable, fully composed pipeline.

    ``stages`` lists the built stage instances outermost first; ``invoke``
    enters the outermost one.  Holds no per-dispatch state, so one instance
    may be invoked concurrently from many runners.
    """

    __slots__ = ("_head", "_stages", "_terminal", "_sink_name", "_intake_name")

    def __init__(
        self,
        head: Handler,
        stages: tuple[Handler, ...],
        terminal: Handler,
        *,
        sink_name: str | None = None,
        intake_name: str | None = None,
    ) -> None:
        self._head = head
        self._stages = stages
        self._terminal = terminal
        self._sink_name = sink_name
        self._intake_name = intake_name

    def invoke(self, context: MessageContext) -> Result:
        return self._head.invoke(context)

    def __call__(self, context: MessageContext) -> Result:
        return self.invoke(context)

    @property
    def stages(self) -> tuple[Handler, ...]:
        return self._stages

    @property
    def terminal(self) -> Handler:
        return self._terminal

    @property
    def sink_name(self) -> str | None:
        return self._sink_name

    @property
    def intake_name(self) -> str | None:
        return self._intake_name

    @property
    def stage_names(self) -> list[str]:
        return [type(stage).__name__ for stage in self._stages]

    def __repr__(self) -> str:
        return (
            f"CompiledPipeline(intake={self._intake_name!r}, sink={self._sink_name!r}, "
            f"stages={self.stage_names!r})"
        )


def compose(
    stages: Sequence[StageSpec],
    terminal: Any = noop_handler,
    *,
    sink_name: str | None = None,
    intake_name: str | None = None,
) -> CompiledPipeline:
    """Compose *stages* around *terminal* into one ``CompiledPipeline``.

    The first spec in *stages* becomes the outermost wrapper.
    """
    terminal_handler = as_handler(terminal)
    inner: Handler = terminal_handler
    built: list[Handler] = []
    for spec in reversed(stages):
        inner = spec.build(inner)
        built.append(inner)
    built.reverse()
    return CompiledPipeline(
        inner,
        tuple(built),
        terminal_handler,
        sink_name=sink_name,
        intake_name=intake_name,
    )
