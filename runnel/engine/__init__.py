"""Runnel dispatch engine — broadcast channels, runners and deferral."""

from runnel.engine.channel import BroadcastChannel, Channel
from runnel.engine.deferral import Deferrer, ImmediateDeferrer, ThreadPoolDeferrer
from runnel.engine.dispatch import DEFAULT_INTAKE, DispatchEngine
from runnel.engine.reporting import (
    CallbackOutcomeSink,
    LoggingOutcomeSink,
    OutcomeSink,
    QueueOutcomeSink,
)
from runnel.engine.runner import Runner

__all__ = [
    "Channel",
    "BroadcastChannel",
    "Deferrer",
    "ImmediateDeferrer",
    "ThreadPoolDeferrer",
    "OutcomeSink",
    "QueueOutcomeSink",
    "LoggingOutcomeSink",
    "CallbackOutcomeSink",
    "Runner",
    "DispatchEngine",
    "DEFAULT_INTAKE",
]
