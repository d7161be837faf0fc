"""Shared test fixtures for Runnel."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from runnel.engine.reporting import QueueOutcomeSink
from runnel.models.context import Result
from runnel.routing.table import RouteTable
from tests.doubles import RecordingHandler, TypedMessage


@pytest.fixture
def route_table() -> RouteTable:
    """Provide an empty RouteTable."""
    return RouteTable()


@pytest.fixture
def successes() -> QueueOutcomeSink:
    """Provide a queue-backed success sink."""
    return QueueOutcomeSink()


@pytest.fixture
def errors() -> QueueOutcomeSink:
    """Provide a queue-backed error sink."""
    return QueueOutcomeSink()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_handler() -> Callable[..., RecordingHandler]:
    """Factory fixture: build a RecordingHandler."""

    def _factory(result: Result | None = None) -> RecordingHandler:
        return RecordingHandler(result)

    return _factory


@pytest.fixture
def make_message() -> Callable[..., TypedMessage]:
    """Factory fixture: build a TypedMessage with sensible defaults."""

    def _factory(message_type: str = "purchase", body: Any = None) -> TypedMessage:
        return TypedMessage(message_type, body)

    return _factory
