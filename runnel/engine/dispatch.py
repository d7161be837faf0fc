"""DispatchEngine — fans published messages out to compiled pipelines.

One broadcast channel per intake is built at construction time; every
pipeline of that intake subscribes to it as a ``Runner``.  ``publish``
pushes the message onto each named intake's channel and returns as soon as
the runners have handed their work to the deferrer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from runnel.engine.channel import BroadcastChannel, Channel
from runnel.engine.deferral import Deferrer, ImmediateDeferrer
from runnel.engine.reporting import OutcomeSink
from runnel.engine.runner import Runner
from runnel.pipeline.chain import CompiledPipeline

logger = logging.getLogger(__name__)

DEFAULT_INTAKE = "default"


class DispatchEngine:
    """Publishes messages to the pipelines of a compiled dispatch table.

    Parameters
    ----------
    table:
        Intake name to ordered pipelines, as returned by
        ``RouteTable.compile()``.
    deferrer:
        Work-deferral facility for runner tasks.  Defaults to
        ``ImmediateDeferrer`` (synchronous execution).
    on_success / on_error:
        Optional outcome reporting sinks shared by every runner.
    channel_factory:
        Callable returning a fresh ``Channel`` for an intake name.
    default_intake:
        Intake used when ``publish`` is called without intake names.

    Usage
    -----
    >>> engine = DispatchEngine(table, deferrer=ThreadPoolDeferrer(4))
    >>> engine.publish(order, "orders", "audit")
    """

    def __init__(
        self,
        table: Mapping[str, tuple[CompiledPipeline, ...]],
        *,
        deferrer: Deferrer | None = None,
        on_success: OutcomeSink | None = None,
        on_error: OutcomeSink | None = None,
        channel_factory: Callable[[str], Channel] = BroadcastChannel,
        default_intake: str = DEFAULT_INTAKE,
    ) -> None:
        self.deferrer: Deferrer = deferrer or ImmediateDeferrer()
        self.default_intake = default_intake
        self._channels: dict[str, Channel] = {}
        self._subscribers: dict[str, int] = {}

        for intake_name, pipelines in table.items():
            channel = channel_factory(intake_name)
            for pipeline in pipelines:
                channel.subscribe(
                    Runner(
                        pipeline,
                        intake_name,
                        self.deferrer,
                        on_success=on_success,
                        on_error=on_error,
                    )
                )
            self._channels[intake_name] = channel
            self._subscribers[intake_name] = len(pipelines)
            logger.debug(
                "Intake %s: subscribed %d pipeline(s)", intake_name, len(pipelines)
            )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def intake_names(self) -> list[str]:
        return list(self._channels)

    def subscriber_count(self, intake_name: str) -> int:
        """Number of pipelines subscribed to *intake_name* (0 if unknown)."""
        return self._subscribers.get(intake_name, 0)

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, message: Any, *intake_names: str) -> int:
        """Broadcast *message* to every pipeline of each named intake.

        Without intake names the message goes to ``default_intake``.
        Unknown intake names are skipped silently.  Subscriber failures
        never reach the caller.

        Returns the number of dispatches scheduled.
        """
        names = intake_names or (self.default_intake,)
        scheduled = 0
        for name in names:
            channel = self._channels.get(str(name))
            if channel is None:
                logger.debug("No subscribers for intake %s; message dropped", name)
                continue
            channel.push(message)
            scheduled += self._subscribers[str(name)]
        return scheduled
