"""Named pipelines that an external job system can run later.

A producer-side handler enqueues a ``PipelineJob`` carrying a pipeline key
and a context snapshot; a worker holding the same ``PipelineJobRegistry``
calls ``job.perform(registry)`` to run the pipeline.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from runnel.core.errors import PipelineNotFoundError
from runnel.models.context import MessageContext, Result
from runnel.pipeline.chain import Handler, as_handler

logger = logging.getLogger(__name__)


class PipelineJobRegistry:
    """Thread-safe registry of pipelines addressable by key."""

    def __init__(self) -> None:
        self._pipelines: dict[str, Handler] = {}
        self._lock = threading.Lock()

    def register(self, key: Any, pipeline: Any) -> None:
        """Register *pipeline* (a handler or plain callable) under *key*."""
        handler = as_handler(pipeline)
        with self._lock:
            self._pipelines[str(key)] = handler
        logger.info("Registered job pipeline: %s", key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._pipelines)

    def perform(self, key: Any, context: Mapping[str, Any] | None = None) -> Result:
        """Run the pipeline registered under *key* with *context*.

        Raises
        ------
        PipelineNotFoundError
            If nothing is registered under *key*.
        """
        with self._lock:
            handler = self._pipelines.get(str(key))
        if handler is None:
            raise PipelineNotFoundError(f"{key} not found")
        return handler.invoke(MessageContext(context or {}))


class PipelineJob(BaseModel):
    """Serializable description of one deferred pipeline run."""

    model_config = ConfigDict(frozen=True)

    pipeline_key: str
    context: dict[str, Any] = {}

    def perform(self, registry: PipelineJobRegistry) -> Result:
        return registry.perform(self.pipeline_key, self.context)
