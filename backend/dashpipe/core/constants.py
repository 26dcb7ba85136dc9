"""Shared constants and enums used across the application."""

from enum import StrEnum


# Cache slot holding the output of the most recent producing step.
CURRENT_KEY = "_"

DEFAULT_CONFIG_PATH = "./.dash/workflows/config.yml"


class PipelineStatus(StrEnum):
    """Overall status of a pipeline execution."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StepStatus(StrEnum):
    """Status of an individual pipeline step."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DispatcherState(StrEnum):
    """Lifecycle of a single Dispatcher instance."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"


class StepKind(StrEnum):
    """Direction of a step."""

    READ = "read"
    WRITE = "write"
    RUN = "run"


class Medium(StrEnum):
    """What a step talks to."""

    FILE = "file"
    HTTP = "http"
    DATABASE = "postgresql"
    PROCESS = "process"


class HttpMethod(StrEnum):
    """HTTP methods accepted by http connectors."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
