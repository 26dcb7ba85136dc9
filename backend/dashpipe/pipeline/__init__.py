"""
Pipeline engine — step model, shared cache, connectors and dispatcher.

This package runs a configured, ordered list of read/write/run steps,
one at a time, with per-step logging, timeouts and fail-fast error
handling.
"""

from dashpipe.pipeline.cache import SharedCache, StepIO
from dashpipe.pipeline.connector import Connector
from dashpipe.pipeline.context import RunContext, StepResult
from dashpipe.pipeline.dispatcher import Dispatcher, PipelineResult
from dashpipe.pipeline.registry import ConnectorRegistry
from dashpipe.pipeline.step import PipelineConfig, Step

__all__ = [
    "Connector",
    "ConnectorRegistry",
    "Dispatcher",
    "PipelineConfig",
    "PipelineResult",
    "RunContext",
    "SharedCache",
    "Step",
    "StepIO",
    "StepResult",
]
