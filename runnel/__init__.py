"""Runnel: configuration-driven message routing.

Producers publish messages into named intakes; each intake fans out to
independently configured sink pipelines, optionally filtered by message
type, with every sink's outcome reported on success/error sinks:
  - RouteTable: incremental route declarations compiled into a dispatch table
  - Middleware chains composed around a terminal handler, plus a global guard
  - DispatchEngine: failure-isolated, deferred execution of every pipeline
"""

__version__ = "0.1.0"
__description__ = "Configuration-driven message routing fabric"

from runnel.engine.dispatch import DispatchEngine
from runnel.models.context import MessageContext, Result
from runnel.routing.table import DispatchTable, RouteTable, route_table

__all__ = [
    "RouteTable",
    "DispatchTable",
    "route_table",
    "DispatchEngine",
    "MessageContext",
    "Result",
    "__version__",
]
