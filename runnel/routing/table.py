"""RouteTable — compiles route declarations into a dispatch table.

Declarations are accumulated in builder state keyed by name and only
turned into pipelines by ``compile()``::

    table = RouteTable()
    table.declare_intake(["orders"], lambda intake: intake.flow_to("billing"))
    table.declare_intake("orders", lambda intake: intake.flow_to("audit", when="refund"))
    table.declare_sink("billing", lambda sink: sink.run(charge_card))
    table.declare_sink("audit", lambda sink: sink.use(Stamp).run(audit_log))
    dispatch_table = table.compile()

Repeated ``declare_intake`` calls for the same name merge (set union of
sinks and of each sink's allowed types).  ``declare_sink`` and
``declare_guard`` replace earlier declarations.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from runnel.core.errors import UnknownSinkError
from runnel.pipeline.chain import ChainSpec, CompiledPipeline, StageSpec, compose
from runnel.pipeline.middleware import TypeFilterStage
from runnel.routing.declarations import (
    IntakeDeclaration,
    SinkDeclaration,
    coerce_names,
)

logger = logging.getLogger(__name__)

IntakeBody = Callable[[IntakeDeclaration], Any]
SinkBody = Callable[[SinkDeclaration], Any]


class DispatchTable(Mapping[str, tuple[CompiledPipeline, ...]]):
    """Immutable mapping of intake name to its ordered compiled pipelines."""

    __slots__ = ("_pipes",)

    def __init__(self, pipes: Mapping[str, tuple[CompiledPipeline, ...]]) -> None:
        self._pipes = MappingProxyType(
            {name: tuple(pipelines) for name, pipelines in pipes.items()}
        )

    def __getitem__(self, intake_name: str) -> tuple[CompiledPipeline, ...]:
        return self._pipes[intake_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._pipes)

    def __len__(self) -> int:
        return len(self._pipes)

    def sink_counts(self) -> dict[str, int]:
        """Return ``{intake_name: number_of_pipelines}``."""
        return {name: len(pipelines) for name, pipelines in self._pipes.items()}

    def __repr__(self) -> str:
        return f"DispatchTable({self.sink_counts()!r})"


class RouteTable:
    """Builder for intakes, sinks and the optional global guard.

    The builder is the only mutable phase; ``compile()`` produces a new
    ``DispatchTable`` every call and never touches earlier results.
    """

    def __init__(self) -> None:
        self._intakes: dict[str, dict[str, set[str]]] = {}
        self._sinks: dict[str, ChainSpec] = {}
        self._guard: ChainSpec | None = None

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def declare_intake(self, names: Any, body: IntakeBody) -> None:
        """Declare sink links for one or more intakes.

        *body* receives an ``IntakeDeclaration`` and calls ``flow_to`` on it.
        The links are merged into every intake in *names*.
        """
        declaration = IntakeDeclaration()
        body(declaration)
        for intake_name in coerce_names(names):
            links = self._intakes.setdefault(intake_name, {})
            for sink_name, message_types in declaration.links.items():
                links.setdefault(sink_name, set()).update(message_types)

    def declare_sink(self, name: Any, body: SinkBody | None = None) -> None:
        """Declare (or replace) the sink *name*.

        *body* receives a ``SinkDeclaration`` and calls ``use`` / ``run``.
        Without a body the sink is a bare no-op pipeline.
        """
        self._sinks[str(name)] = self._build_chain(body)

    def declare_guard(self, body: SinkBody) -> None:
        """Declare the guard chain run before every sink; the last one wins.

        A guard's terminal handler is ignored: each compiled sink takes its place.
        """
        self._guard = self._build_chain(body)

    @staticmethod
    def _build_chain(body: SinkBody | None) -> ChainSpec:
        declaration = SinkDeclaration()
        if body is not None:
            body(declaration)
        return declaration.to_spec()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def intake_names(self) -> list[str]:
        return list(self._intakes)

    @property
    def sink_names(self) -> list[str]:
        return list(self._sinks)

    @property
    def has_guard(self) -> bool:
        return self._guard is not None

    def links_for(self, intake_name: str) -> dict[str, frozenset[str]]:
        """Return the merged ``{sink_name: allowed_types}`` links of an intake."""
        links = self._intakes.get(intake_name, {})
        return {sink: frozenset(types) for sink, types in links.items()}

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def compile(self) -> DispatchTable:
        """Build the dispatch table.

        For every (intake, sink) link the pipeline is, outermost first:
        the guard stages, a ``TypeFilterStage`` when the link has allowed
        types, the sink's own stages, then the sink's terminal handler.

        Raises
        ------
        UnknownSinkError
            If any intake flows to an undeclared sink.  No table is returned.
        """
        pipes: dict[str, list[CompiledPipeline]] = {}

        for intake_name, links in self._intakes.items():
            for sink_name, message_types in links.items():
                sink = self._sinks.get(sink_name)
                if sink is None:
                    raise UnknownSinkError(sink_name, intake_name)

                stages: list[StageSpec] = []
                if self._guard is not None:
                    stages.extend(self._guard.stages)
                if message_types:
                    stages.append(
                        StageSpec(factory=TypeFilterStage, args=tuple(sorted(message_types)))
                    )
                stages.extend(sink.stages)

                pipeline = compose(
                    stages,
                    sink.terminal,
                    sink_name=sink_name,
                    intake_name=intake_name,
                )
                pipes.setdefault(intake_name, []).append(pipeline)

        table = DispatchTable({name: tuple(pipelines) for name, pipelines in pipes.items()})
        logger.debug("Compiled dispatch table: %s", table.sink_counts())
        return table


def route_table(body: Callable[[RouteTable], Any]) -> RouteTable:
    """Run *body* against a fresh ``RouteTable`` and return it.

    Lets a whole configuration be written as one function::

        @route_table
        def routes(table):
            table.declare_intake("default", lambda i: i.flow_to("log"))
            table.declare_sink("log")
    """
    table = RouteTable()
    body(table)
    return table
