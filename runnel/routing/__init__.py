"""Runnel routing — declarative route tables compiled into dispatch tables.

Intakes name the entry points messages are published to; sinks are the
independently configured pipelines an intake flows to.  A ``RouteTable``
accumulates declarations and compiles them into an immutable
``DispatchTable`` consumed by the dispatch engine.
"""

from runnel.routing.declarations import IntakeDeclaration, SinkDeclaration
from runnel.routing.loader import (
    RouteFile,
    load_route_file,
    resolve_import_path,
    route_table_from_mapping,
)
from runnel.routing.table import DispatchTable, RouteTable, route_table

__all__ = [
    "IntakeDeclaration",
    "SinkDeclaration",
    "RouteTable",
    "DispatchTable",
    "route_table",
    "RouteFile",
    "load_route_file",
    "route_table_from_mapping",
    "resolve_import_path",
]
