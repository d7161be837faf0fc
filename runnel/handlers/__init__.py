"""Runnel handlers — terminal handlers and the pipeline job registry."""

from runnel.handlers.jobs import PipelineJob, PipelineJobRegistry
from runnel.handlers.sinks import (
    ENQUEUE_RESULT_KEY,
    LIST_PUSH_RESULT_KEY,
    EnqueueHandler,
    ListPushHandler,
    extract_payload,
)

__all__ = [
    "ListPushHandler",
    "EnqueueHandler",
    "extract_payload",
    "LIST_PUSH_RESULT_KEY",
    "ENQUEUE_RESULT_KEY",
    "PipelineJob",
    "PipelineJobRegistry",
]
