"""
Dispatcher — the orchestrator that runs steps strictly in order.

Responsibilities:
    - Check up front that every step maps to a registered connector
    - Execute each step as its own task, one at a time, with timing,
      logging and an optional timeout
    - Carry every task's outcome back as a StepResult and check it
    - Stop at the first failure; later steps never run
    - Return a complete PipelineResult

State machine (one Dispatcher per run)::

    IDLE → RUNNING(0) → RUNNING(1) → … → DONE
                      ↘ FAILED (at the failing index)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

import structlog

from dashpipe.core.config import settings
from dashpipe.core.constants import DispatcherState, PipelineStatus, StepStatus
from dashpipe.pipeline.cache import StepIO
from dashpipe.pipeline.connector import Connector
from dashpipe.pipeline.context import RunContext, StepResult
from dashpipe.pipeline.errors import (
    CacheClosedError,
    ConfigError,
    PipelineError,
    StepExecutionError,
    StepTimeoutError,
)
from dashpipe.pipeline.registry import ConnectorRegistry
from dashpipe.pipeline.step import PipelineConfig, Step

_UNSET: Any = object()


@dataclass
class PipelineResult:
    """Final outcome of a pipeline execution."""

    execution_id: str
    status: str                     # PipelineStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: int = 0
    steps_completed: int = 0
    total_steps: int = 0
    step_results: list[dict[str, Any]] = field(default_factory=list)
    context_summary: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_kind: str | None = None
    failed_step_index: int | None = None
    failed_step_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == PipelineStatus.COMPLETED


class Dispatcher:
    """
    Runs an ordered list of Steps against a RunContext.

    Usage::

        dispatcher = Dispatcher()
        result = await dispatcher.run_config(load_config("pipeline.yml"))
        if not result.ok:
            print(result.failed_step_name, result.error_kind, result.error)

    Steps never overlap: each step's task is awaited before the next one
    is created, so cache writes of step i are visible to step i+1.
    """

    def __init__(
        self,
        registry: ConnectorRegistry | None = None,
        step_timeout: float | None = _UNSET,
        on_step: Callable[[StepResult], None] | None = None,
    ) -> None:
        """
        Args:
            registry: Connector lookup; defaults to the built-in connectors.
            step_timeout: Default per-step timeout in seconds (None = no limit).
                          Falls back to settings.DASH_STEP_TIMEOUT_SECONDS.
            on_step: Called with each StepResult as soon as the step ends.
        """
        self.registry = registry or ConnectorRegistry()
        self.step_timeout = (
            settings.DASH_STEP_TIMEOUT_SECONDS if step_timeout is _UNSET else step_timeout
        )
        self.on_step = on_step
        self.state = DispatcherState.IDLE
        self.step_index: int | None = None
        self.logger = structlog.get_logger("pipeline.dispatcher")

    async def run_config(
        self,
        config: PipelineConfig,
        ctx: RunContext | None = None,
    ) -> PipelineResult:
        """Run a loaded PipelineConfig, applying its pipeline-wide env."""
        ctx = ctx or RunContext()
        ctx.env = {**config.env, **ctx.env}
        return await self.run(config.steps, ctx)

    async def run(
        self,
        steps: Sequence[Step],
        ctx: RunContext | None = None,
    ) -> PipelineResult:
        """
        Execute `steps` in order against `ctx` (a fresh context by default).

        Raises:
            ConfigError: Empty step list or a step with no connector.
                         Raised before any step runs.
            RuntimeError: This Dispatcher was already used.
            CacheClosedError: A step touched a cache that was already closed.
        """
        if self.state != DispatcherState.IDLE:
            raise RuntimeError(f"Dispatcher already used (state={self.state})")

        ctx = ctx or RunContext()
        steps = list(steps)
        self._preflight(steps, ctx)

        started_at = datetime.now(timezone.utc)
        ctx.total_steps = len(steps)

        log = self.logger.bind(
            execution_id=ctx.execution_id,
            total_steps=len(steps),
        )
        log.info("Pipeline started")

        self.state = DispatcherState.RUNNING
        steps_completed = 0
        failure: StepResult | None = None

        for index, step in enumerate(steps):
            self.step_index = index
            ctx.current_step_index = index

            step_log = log.bind(
                step_index=index,
                step_name=step.label(index),
                step_kind=str(step.kind),
                step_medium=str(step.medium),
            )
            step_log.info(f"Step {index + 1}/{len(steps)}: {step.kind} {step.medium}")

            result = await self._execute_step(step, index, ctx, step_log)
            ctx.step_results.append(result)
            if self.on_step is not None:
                self.on_step(result)

            if result.status == StepStatus.COMPLETED:
                steps_completed += 1
                step_log.info(
                    "Step completed",
                    duration_ms=result.duration_ms,
                    metadata=result.metadata,
                )
                continue

            step_log.error(
                "Step failed — pipeline stopping",
                error=result.error,
                error_kind=result.error_kind,
                duration_ms=result.duration_ms,
            )
            failure = result
            break

        # ── Finalise ──────────────────────────────────
        completed_at = datetime.now(timezone.utc)
        total_duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        if failure is None:
            self.state = DispatcherState.DONE
            status = PipelineStatus.COMPLETED
        else:
            self.state = DispatcherState.FAILED
            status = PipelineStatus.FAILED

        log.info(
            "Pipeline finished",
            status=str(status),
            steps_completed=steps_completed,
            duration_ms=total_duration_ms,
        )

        return PipelineResult(
            execution_id=ctx.execution_id,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            total_duration_ms=total_duration_ms,
            steps_completed=steps_completed,
            total_steps=len(steps),
            step_results=[sr.to_dict() for sr in ctx.step_results],
            context_summary=ctx.to_summary_dict(),
            error=failure.error if failure else None,
            error_kind=failure.error_kind if failure else None,
            failed_step_index=failure.step_index if failure else None,
            failed_step_name=failure.step_name if failure else None,
        )

    def _preflight(self, steps: list[Step], ctx: RunContext) -> None:
        """Reject configurations that cannot run, before anything runs."""
        if not steps:
            raise ConfigError("Pipeline has no steps", execution_id=ctx.execution_id)

        for index, step in enumerate(steps):
            if (step.kind, step.medium) not in self.registry.registry:
                raise ConfigError(
                    f"No connector registered for {step.kind} {step.medium}",
                    execution_id=ctx.execution_id,
                    step_name=step.label(index),
                    step_index=index,
                )

    async def _execute_step(
        self,
        step: Step,
        index: int,
        ctx: RunContext,
        log: structlog.stdlib.BoundLogger,
    ) -> StepResult:
        """
        Run one step as its own task and turn its outcome into a StepResult.
        Never raises for step failures.
        """
        started_at = datetime.now(timezone.utc)
        timeout = step.timeout if step.timeout is not None else self.step_timeout

        connector = self.registry.resolve(step, index, ctx.env)
        io = StepIO(
            ctx.cache,
            output_key=step.output_key(index),
            input_key=step.input_key(),
            step_name=step.label(index),
            step_index=index,
        )

        task = asyncio.create_task(
            self._run_connector(connector, io),
            name=f"dash-step-{index}",
        )

        metadata: dict[str, Any] = {}
        error: PipelineError | None = None
        try:
            if timeout is None:
                metadata = await task
            else:
                metadata = await asyncio.wait_for(task, timeout)
        except TimeoutError as exc:
            if task.cancelled():
                error = StepTimeoutError(
                    f"Step exceeded its {timeout}s timeout and was cancelled",
                    timeout=timeout,
                )
            else:
                error = StepExecutionError(f"Unexpected: {exc!r}")
        except PipelineError as exc:
            error = exc
        except CacheClosedError:
            # Misuse of the run context, not a step outcome
            self.state = DispatcherState.FAILED
            raise
        except Exception as exc:
            # Connectors raise PipelineError subclasses; anything else is a bug
            log.exception("Unexpected error in step", error=str(exc))
            error = StepExecutionError(f"Unexpected: {exc!r}")
            error.__cause__ = exc

        completed_at = datetime.now(timezone.utc)
        duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        if error is None:
            return StepResult(
                step_index=index,
                step_name=step.label(index),
                kind=step.kind,
                medium=step.medium,
                status=StepStatus.COMPLETED,
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=duration_ms,
                metadata=metadata or {},
            )

        error.execution_id = ctx.execution_id
        if error.step_name is None:
            error.step_name = step.label(index)
        if error.step_index is None:
            error.step_index = index

        return StepResult(
            step_index=index,
            step_name=step.label(index),
            kind=step.kind,
            medium=step.medium,
            status=StepStatus.FAILED,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=duration_ms,
            error=str(error),
            error_kind=error.kind,
            metadata={**error.details, **_error_extras(error)},
        )

    @staticmethod
    async def _run_connector(connector: Connector, io: StepIO) -> dict[str, Any]:
        async with connector:
            return await connector.execute(io)


def _error_extras(error: PipelineError) -> dict[str, Any]:
    """Structured attributes of specific error kinds, for the step result."""
    extras: dict[str, Any] = {}
    for attr in ("status_code", "returncode", "stderr", "key", "timeout"):
        value = getattr(error, attr, None)
        if value is not None:
            extras[attr] = value
    return extras
