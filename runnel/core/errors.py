"""Runnel error taxonomy.

Configuration problems surface synchronously from ``RouteTable.compile()``
and the route file loader.  Failures raised by handlers at dispatch time are
never raised to the publisher; the Runner converts them into error results.
"""

from __future__ import annotations


class RunnelError(RuntimeError):
    """Base class for every error Runnel raises."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RouteConfigError(RunnelError):
    """Raised when a route configuration cannot be compiled."""


class UnknownSinkError(RouteConfigError):
    """Raised when an intake flows to a sink that was never declared."""

    def __init__(self, sink_name: str, intake_name: str) -> None:
        self.sink_name = sink_name
        self.intake_name = intake_name
        super().__init__(
            f"Sink not found: {sink_name!r} (referenced by intake {intake_name!r})"
        )


class RouteFileError(RouteConfigError):
    """Raised when a route file is unreadable or fails validation."""


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


class DeferralError(RunnelError):
    """Raised when work is deferred to a facility that no longer accepts it."""


class PipelineNotFoundError(RunnelError):
    """Raised when a job names a pipeline that is not registered."""


# ---------------------------------------------------------------------------
# Message models
# ---------------------------------------------------------------------------


class MessageModelError(RunnelError):
    """Base class for typed message loading errors."""


class MismatchedTypeError(MessageModelError):
    """Raised when loaded data declares a different message type."""


class UnknownFieldsError(MessageModelError):
    """Raised when loaded data carries fields the model does not declare."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(f"Unknown message fields: {', '.join(fields)}")
