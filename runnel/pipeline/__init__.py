"""Runnel pipelines — middleware chains and built-in stages."""

from runnel.pipeline.chain import (
    BaseStage,
    ChainSpec,
    CompiledPipeline,
    FunctionHandler,
    Handler,
    StageSpec,
    as_handler,
    compose,
    noop_handler,
)
from runnel.pipeline.middleware import (
    FieldTransformStage,
    ParameterizeStage,
    TypeFilterStage,
)

__all__ = [
    "Handler",
    "BaseStage",
    "FunctionHandler",
    "StageSpec",
    "ChainSpec",
    "CompiledPipeline",
    "as_handler",
    "compose",
    "noop_handler",
    "TypeFilterStage",
    "FieldTransformStage",
    "ParameterizeStage",
]
