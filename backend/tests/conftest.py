"""
Shared fixtures for the dashpipe test-suite.

Async code is driven with asyncio.run() inside plain test functions, the
same way the runner itself is driven from the CLI.
"""

import stat
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from dashpipe.pipeline.cache import SharedCache, StepIO
from dashpipe.pipeline.step import Step


@pytest.fixture
def make_step() -> Callable[..., Step]:
    """Build a validated Step from keyword arguments shaped like the YAML."""

    def _make(**doc: Any) -> Step:
        return Step.model_validate(doc)

    return _make


@pytest.fixture
def cache() -> SharedCache:
    return SharedCache()


@pytest.fixture
def make_io(cache) -> Callable[..., StepIO]:
    """StepIO bound to the `cache` fixture."""

    def _make(output_key: str = "0", input_key: str = "_") -> StepIO:
        return StepIO(cache, output_key=output_key, input_key=input_key, step_name="test", step_index=0)

    return _make


@pytest.fixture
def write_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Create an executable /bin/sh script in tmp_path and return its path."""

    def _write(name: str, body: str) -> Path:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _write


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code: int = 200, content: bytes = b"", exc: Exception | None = None):
        self.status_code = status_code
        self.content = content
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, content=self.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def http_handler() -> Callable[..., RecordingHandler]:
    return RecordingHandler
