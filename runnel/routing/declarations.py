"""Builder-only declaration objects handed to route declaration bodies.

These objects are mutable and only live while a ``RouteTable`` is being
assembled.  ``RouteTable.compile()`` turns their accumulated state into
immutable pipelines.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from runnel.pipeline.chain import ChainSpec, StageFactory, StageSpec, as_handler, noop_handler


def coerce_names(names: Any) -> list[str]:
    """Normalize a single name or an iterable of names to a list of strings."""
    if isinstance(names, (str, bytes)) or not isinstance(names, Iterable):
        return [str(names)]
    return [str(name) for name in names]


def coerce_types(when: Any) -> set[str]:
    """Normalize a ``when=`` filter to a set of type strings.

    ``None`` means unrestricted and yields an empty set.
    """
    if when is None:
        return set()
    return set(coerce_names(when))


class IntakeDeclaration:
    """Collects ``flow_to`` links for one ``declare_intake`` body."""

    def __init__(self) -> None:
        self.links: dict[str, set[str]] = {}

    def flow_to(self, *sink_names: Any, when: Any = None) -> IntakeDeclaration:
        """Route the intake to *sink_names*, optionally only for types in *when*.

        Repeated calls for the same sink union their type sets.
        """
        message_types = coerce_types(when)
        names = [name for item in sink_names for name in coerce_names(item)]
        for name in names:
            self.links.setdefault(name, set()).update(message_types)
        return self


class SinkDeclaration:
    """Collects the ordered stages and terminal handler of a sink or guard."""

    def __init__(self) -> None:
        self.stages: list[StageSpec] = []
        self.terminal: Any = noop_handler

    def use(self, factory: StageFactory, *args: Any, **kwargs: Any) -> SinkDeclaration:
        """Append a stage; it will be built as ``factory(inner, *args, **kwargs)``."""
        self.stages.append(StageSpec(factory=factory, args=args, kwargs=kwargs))
        return self

    def run(self, handler: Any) -> SinkDeclaration:
        """Set the terminal handler, replacing any earlier one.

        Raises ``TypeError`` at declaration time if *handler* is not usable.
        """
        self.terminal = as_handler(handler)
        return self

    def to_spec(self) -> ChainSpec:
        return ChainSpec(stages=tuple(self.stages), terminal=self.terminal)
