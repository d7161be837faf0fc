"""Per-dispatch message context and pipeline results.

The reserved key names and status codes are part of the contract with
external handlers and must not change.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any, NamedTuple

# Reserved context / result metadata keys
INTAKE_KEY = "intake_name"
MESSAGE_KEY = "message"
MESSAGE_TYPE_KEY = "message_type"
EXCEPTION_KEY = "exception"
FILTERED_BY_KEY = "filtered_by"
FILTERED_TYPE_KEY = "filtered_type"

# Status codes
OK = 200
SERVER_ERROR = 500


class Result(NamedTuple):
    """The ``(status, metadata, body)`` triple every pipeline returns.

    A status of ``OK`` does not mean the terminal handler ran; a stage may
    have completed the dispatch on its own (see ``TypeFilterStage``).
    """

    status: int
    metadata: dict[str, Any]
    body: list[str]

    @classmethod
    def ok(cls, metadata: Mapping[str, Any] | None = None) -> Result:
        return cls(OK, dict(metadata or {}), [])

    @classmethod
    def server_error(cls, metadata: Mapping[str, Any]) -> Result:
        return cls(SERVER_ERROR, dict(metadata), [])

    @property
    def is_ok(self) -> bool:
        return self.status == OK


def declared_message_type(message: Any) -> str | None:
    """Return the message's declared type as a string, or ``None``.

    A message declares a type by exposing a ``message_type`` attribute,
    either a value or a zero-argument callable.  A missing attribute or a
    ``None`` value means the message is untyped.
    """
    accessor = getattr(message, "message_type", None)
    if callable(accessor):
        accessor = accessor()
    if accessor is None:
        return None
    return str(accessor)


class MessageContext(Mapping[str, Any]):
    """Immutable mapping handed to every stage of a pipeline.

    Stages never mutate a context.  A stage that needs different entries
    calls :meth:`evolve` and passes the returned copy inward, so the
    context seen by outer stages stays unchanged.

    Examples
    --------
    >>> ctx = MessageContext.for_message("ping", "default")
    >>> ctx.intake_name
    'default'
    >>> ctx.evolve(message="pong")["message"]
    'pong'
    >>> ctx["message"]
    'ping'
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Any] | None = None, **extra: Any) -> None:
        data = dict(entries or {})
        data.update(extra)
        self._entries = MappingProxyType(data)

    @classmethod
    def for_message(cls, message: Any, intake_name: str) -> MessageContext:
        """Build the context for one (message, pipeline) dispatch."""
        entries: dict[str, Any] = {MESSAGE_KEY: message, INTAKE_KEY: intake_name}
        message_type = declared_message_type(message)
        if message_type is not None:
            entries[MESSAGE_TYPE_KEY] = message_type
        return cls(entries)

    # -- Mapping interface ----------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MessageContext({dict(self._entries)!r})"

    # -- Reserved entries -----------------------------------------------

    @property
    def message(self) -> Any:
        return self._entries.get(MESSAGE_KEY)

    @property
    def intake_name(self) -> str | None:
        return self._entries.get(INTAKE_KEY)

    @property
    def message_type(self) -> str | None:
        return self._entries.get(MESSAGE_TYPE_KEY)

    # -- Copy-on-write ----------------------------------------------------

    def evolve(self, updates: Mapping[str, Any] | None = None, **entries: Any) -> MessageContext:
        """Return a new context with *updates* and *entries* applied."""
        data = dict(self._entries)
        if updates:
            data.update(updates)
        data.update(entries)
        return MessageContext(data)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain, mutable copy of the entries."""
        return dict(self._entries)
