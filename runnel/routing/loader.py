"""Route files — declarative TOML route configuration.

A route file describes the same intakes, sinks and guard as the
``RouteTable`` builder, with stages and handlers given as
``module:attribute`` import paths::

    [[intakes]]
    names = ["orders"]
    flow = [
        { sinks = ["billing"] },
        { sinks = ["audit"], when = ["refund"] },
    ]

    [sinks.billing]
    run = "shop.handlers:charge_card"

    [sinks.audit]
    stages = [{ factory = "runnel.pipeline:FieldTransformStage", kwargs = { method = "to_json" } }]
    run = "shop.handlers:AuditLog"
    run_kwargs = { path = "audit.log" }

    [guard]
    stages = [{ factory = "shop.stages:RequireTenant" }]

The file is validated by Pydantic models before anything is imported.
"""

from __future__ import annotations

import importlib
import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from runnel.core.errors import RouteFileError
from runnel.routing.declarations import SinkDeclaration
from runnel.routing.table import RouteTable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# File schema
# ---------------------------------------------------------------------------


class StageEntry(BaseModel):
    """A stage reference plus its constructor arguments."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    factory: str
    args: list[Any] = []
    kwargs: dict[str, Any] = {}


class SinkEntry(BaseModel):
    """A sink (or guard) chain: ordered stages and an optional terminal."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    stages: list[StageEntry] = []
    run: str | None = None
    run_args: list[Any] = []
    run_kwargs: dict[str, Any] = {}


class FlowEntry(BaseModel):
    """One ``flow_to`` link: sink names and an optional type filter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sinks: list[str]
    when: str | list[str] | None = None


class IntakeEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    names: list[str]
    flow: list[FlowEntry] = []


class RouteFile(BaseModel):
    """Top-level schema of a route file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    intakes: list[IntakeEntry] = []
    sinks: dict[str, SinkEntry] = {}
    guard: SinkEntry | None = None


# ---------------------------------------------------------------------------
# Import resolution
# ---------------------------------------------------------------------------


def resolve_import_path(ref: str) -> Any:
    """Resolve ``"package.module:attr.sub"`` to the named object.

    Raises
    ------
    RouteFileError
        If the reference is malformed, the module cannot be imported, or
        the attribute does not exist.
    """
    module_name, sep, attr_path = ref.partition(":")
    if not sep or not module_name or not attr_path:
        raise RouteFileError(f"Invalid import path {ref!r}: expected 'module:attribute'")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise RouteFileError(f"Cannot import module {module_name!r}: {exc}") from exc

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as exc:
            raise RouteFileError(f"{ref!r} has no attribute {attr!r}") from exc
    return target


def _file_stage(factory: Any, ref: str) -> Any:
    """Wrap a stage factory so bad file arguments surface as ``RouteFileError``."""

    def build(inner: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return factory(inner, *args, **kwargs)
        except (TypeError, ValueError) as exc:
            raise RouteFileError(f"Cannot build stage {ref!r}: {exc}") from exc

    build.__name__ = getattr(factory, "__name__", ref)
    return build


def _apply_chain(entry: SinkEntry, sink: SinkDeclaration) -> None:
    for stage in entry.stages:
        factory = resolve_import_path(stage.factory)
        sink.use(_file_stage(factory, stage.factory), *stage.args, **stage.kwargs)
    if entry.run is not None:
        handler = resolve_import_path(entry.run)
        try:
            if isinstance(handler, type) or entry.run_args or entry.run_kwargs:
                handler = handler(*entry.run_args, **entry.run_kwargs)
            sink.run(handler)
        except (TypeError, ValueError) as exc:
            raise RouteFileError(f"Cannot build handler {entry.run!r}: {exc}") from exc


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def route_table_from_mapping(data: Mapping[str, Any]) -> RouteTable:
    """Validate *data* against the route file schema and build a ``RouteTable``."""
    try:
        spec = RouteFile.model_validate(data)
    except ValidationError as exc:
        raise RouteFileError(f"Invalid route configuration: {exc}") from exc

    table = RouteTable()
    for intake in spec.intakes:
        flows = intake.flow

        def _declare_flows(declaration: Any, flows: list[FlowEntry] = flows) -> None:
            for flow in flows:
                declaration.flow_to(*flow.sinks, when=flow.when)

        table.declare_intake(intake.names, _declare_flows)

    for name, entry in spec.sinks.items():
        table.declare_sink(name, lambda sink, entry=entry: _apply_chain(entry, sink))

    if spec.guard is not None:
        guard = spec.guard
        table.declare_guard(lambda sink: _apply_chain(guard, sink))

    logger.debug(
        "Loaded %d intake declaration(s), %d sink(s), guard=%s",
        len(spec.intakes),
        len(spec.sinks),
        spec.guard is not None,
    )
    return table


def load_route_file(path: Path | str) -> RouteTable:
    """Read a TOML route file and build its ``RouteTable``."""
    path = Path(path)
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise RouteFileError(f"Route file not found: {path}") from exc
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise RouteFileError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise RouteFileError(f"Cannot read route file {path}: {exc}") from exc

    logger.info("Loading routes from %s", path)
    return route_table_from_mapping(data)
