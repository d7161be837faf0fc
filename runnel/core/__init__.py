"""Runnel core — shared error types."""

from runnel.core.errors import (
    DeferralError,
    MessageModelError,
    MismatchedTypeError,
    PipelineNotFoundError,
    RouteConfigError,
    RouteFileError,
    RunnelError,
    UnknownFieldsError,
    UnknownSinkError,
)

__all__ = [
    "RunnelError",
    "RouteConfigError",
    "UnknownSinkError",
    "RouteFileError",
    "DeferralError",
    "PipelineNotFoundError",
    "MessageModelError",
    "MismatchedTypeError",
    "UnknownFieldsError",
]
