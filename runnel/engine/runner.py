"""Runner — one failure-isolated dispatch of a message through one pipeline.

Each dispatch moves ``scheduled -> running -> succeeded | failed`` and is
never retried here.  Whatever the pipeline raises is converted into a
``SERVER_ERROR`` result for the error sink; nothing propagates to the
publisher or to sibling dispatches.
"""

from __future__ import annotations

import logging
from typing import Any

from runnel.engine.deferral import Deferrer
from runnel.engine.reporting import OutcomeSink
from runnel.models.context import EXCEPTION_KEY, INTAKE_KEY, MESSAGE_KEY, MessageContext, Result
from runnel.pipeline.chain import CompiledPipeline

logger = logging.getLogger(__name__)


class Runner:
    """Channel subscriber that runs one pipeline for every pushed message.

    Parameters
    ----------
    pipeline:
        The compiled pipeline to invoke.
    intake_name:
        The intake this runner is subscribed to; recorded in each context.
    deferrer:
        Where the dispatch task executes.
    on_success:
        Optional sink receiving each pipeline result.
    on_error:
        Optional sink receiving a synthesized ``SERVER_ERROR`` result when
        the pipeline raises.
    """

    def __init__(
        self,
        pipeline: CompiledPipeline,
        intake_name: str,
        deferrer: Deferrer,
        on_success: OutcomeSink | None = None,
        on_error: OutcomeSink | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.intake_name = intake_name
        self._deferrer = deferrer
        self._on_success = on_success
        self._on_error = on_error

    def __call__(self, message: Any) -> None:
        """Schedule a dispatch of *message*; returns without waiting for it."""
        self._deferrer.defer(lambda: self.run(message))

    def run(self, message: Any) -> Result:
        """Execute the dispatch on the current thread and return its outcome."""
        # Fallback for when the message's type accessor raises.
        context = MessageContext({MESSAGE_KEY: message, INTAKE_KEY: self.intake_name})
        try:
            context = MessageContext.for_message(message, self.intake_name)
            result = self.pipeline.invoke(context)
            if self._on_success is not None:
                self._on_success.push(result)
            return result
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Sink %s failed on intake %s: %r",
                self.pipeline.sink_name,
                self.intake_name,
                exc,
            )
            error_result = Result.server_error({**context, EXCEPTION_KEY: exc})
            self._report_error(error_result)
            return error_result

    def _report_error(self, result: Result) -> None:
        if self._on_error is None:
            logger.debug("No error sink configured; discarding failure on %s", self.intake_name)
            return
        try:
            self._on_error.push(result)
        except Exception:  # noqa: BLE001
            logger.exception("Error sink rejected a failure report for intake %s", self.intake_name)

    def __repr__(self) -> str:
        return f"Runner(intake={self.intake_name!r}, sink={self.pipeline.sink_name!r})"
