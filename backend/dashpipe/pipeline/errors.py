"""
Domain-specific exception hierarchy for the pipeline runner.

All pipeline exceptions inherit from PipelineError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (step name, step index, execution ID) for logging/debugging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        execution_id: str | None = None,
        step_name: str | None = None,
        step_index: int | None = None,
        details: dict | None = None,
    ) -> None:
        self.execution_id = execution_id
        self.step_name = step_name
        self.step_index = step_index
        self.details = details or {}
        super().__init__(message)

    @property
    def kind(self) -> str:
        """Short error kind used in reports, e.g. "NetworkError"."""
        return type(self).__name__


class ConfigError(PipelineError):
    """Malformed or missing pipeline configuration.  Always fatal."""
    pass


class StepExecutionError(PipelineError):
    """A step failed during execution."""
    pass


class IoError(StepExecutionError):
    """Reading or writing a local file failed."""
    pass


class NetworkError(StepExecutionError):
    """An HTTP call failed at the transport level or returned a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, **kwargs)


class DatabaseError(StepExecutionError):
    """Database connection or query failed, or the query returned nothing."""
    pass


class ProcessError(StepExecutionError):
    """A child process could not be started or exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str | None = None,
        **kwargs,
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message, **kwargs)


class CacheMissError(StepExecutionError):
    """A step expected cache content that no earlier step produced."""

    def __init__(self, message: str, *, key: str | None = None, **kwargs) -> None:
        self.key = key
        super().__init__(message, **kwargs)


class ConnectorNotImplementedError(StepExecutionError, NotImplementedError):
    """The requested (direction, medium) pair has no implementation."""

    @property
    def kind(self) -> str:
        return "NotImplementedError"


class StepTimeoutError(StepExecutionError):
    """A step exceeded its time budget and was cancelled."""

    def __init__(self, message: str, *, timeout: float | None = None, **kwargs) -> None:
        self.timeout = timeout
        super().__init__(message, **kwargs)


class CacheClosedError(RuntimeError):
    """The shared cache was used after teardown (programming error)."""
    pass
