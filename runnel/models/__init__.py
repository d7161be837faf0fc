"""Runnel data models — message context, results and typed messages."""

from runnel.models.context import (
    EXCEPTION_KEY,
    FILTERED_BY_KEY,
    FILTERED_TYPE_KEY,
    INTAKE_KEY,
    MESSAGE_KEY,
    MESSAGE_TYPE_KEY,
    OK,
    SERVER_ERROR,
    MessageContext,
    Result,
    declared_message_type,
)
from runnel.models.messages import Event, Message

__all__ = [
    # context
    "INTAKE_KEY",
    "MESSAGE_KEY",
    "MESSAGE_TYPE_KEY",
    "EXCEPTION_KEY",
    "FILTERED_BY_KEY",
    "FILTERED_TYPE_KEY",
    "OK",
    "SERVER_ERROR",
    "MessageContext",
    "Result",
    "declared_message_type",
    # messages
    "Message",
    "Event",
]
