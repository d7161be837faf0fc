"""Typed message models that declare their own ``message_type``.

Any object can be published; these models are a convenience for producers
that want validated payloads whose type drives sink filtering.  Each
subclass fixes its type by overriding the ``message_type`` default::

    class OrderPlaced(Message):
        message_type: str = "order_placed"
        order_id: str
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from runnel.core.errors import MismatchedTypeError, UnknownFieldsError


class Message(BaseModel):
    """Base class for typed messages."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    message_type: str = "message"

    @classmethod
    def declared_type(cls) -> str:
        """Return the message type this class declares."""
        return cls.model_fields["message_type"].default

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        ignore_type: bool = False,
        ignore_unknown: bool = False,
    ) -> Message:
        """Load a message from a plain mapping (e.g. decoded JSON).

        Parameters
        ----------
        data:
            Field values keyed by name.  May carry a ``message_type`` entry.
        ignore_type:
            Skip the check that ``data["message_type"]`` matches this class.
        ignore_unknown:
            Drop keys the model does not declare instead of raising.

        Raises
        ------
        MismatchedTypeError
            If the declared type differs and *ignore_type* is false.
        UnknownFieldsError
            If unknown keys are present and *ignore_unknown* is false.
        """
        expected = cls.declared_type()
        if not ignore_type and data.get("message_type") != expected:
            raise MismatchedTypeError(
                f"Expected message_type {expected!r}, got {data.get('message_type')!r}"
            )

        known = set(cls.model_fields)
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown and not ignore_unknown:
            raise UnknownFieldsError(unknown)

        values = {key: value for key, value in data.items() if key in known}
        values["message_type"] = expected
        return cls.model_validate(values)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        return self.model_dump_json()


class Event(Message):
    """A message stamped with a unique id and creation time."""

    message_type: str = "event"
    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_timestamp: float = Field(default_factory=time.time)
