"""
Connector — abstract base class for every (direction, medium) pair.

The dispatcher drives each connector through the same lifecycle::

    async with connector:            # open()
        metadata = await connector.execute(io)
                                     # close(), also on cancel

Connectors only implement the I/O.  Timing, logging of the outcome and
turning errors into step results is the dispatcher's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from dashpipe.pipeline.cache import StepIO
from dashpipe.pipeline.step import Step


class Connector(ABC):
    """
    Base class for every connector.

    Subclasses MUST implement:
        - execute(io)         — the actual I/O, returns result metadata

    Subclasses MAY implement:
        - open()              — acquire clients / connections
        - close()             — release them; must be safe to call after a
                                failed or cancelled open()/execute()
    """

    description: str = "No description"

    def __init__(self, step: Step, index: int = 0) -> None:
        self.step = step
        self.index = index

    @property
    def step_name(self) -> str:
        return self.step.label(self.index)

    async def open(self) -> None:
        """Acquire resources.  Default: nothing to acquire."""
        pass

    @abstractmethod
    async def execute(self, io: StepIO) -> dict[str, Any]:
        """
        Run the connector's I/O against the scoped cache handle.

        Returns a metadata dict recorded on the step result.
        Raise a StepExecutionError subclass on failure.
        """
        ...

    async def close(self) -> None:
        """Release resources.  Default: nothing to release."""
        pass

    async def __aenter__(self) -> "Connector":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _error_context(self) -> dict[str, Any]:
        """Keyword arguments identifying this step on raised errors."""
        return {"step_name": self.step_name, "step_index": self.index}
