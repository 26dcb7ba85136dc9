"""
File connectors — whole-file read into the cache and write out of it.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from dashpipe.core.logging import get_logger
from dashpipe.pipeline.cache import StepIO
from dashpipe.pipeline.connector import Connector
from dashpipe.pipeline.errors import IoError
from dashpipe.pipeline.step import FileConfig

logger = get_logger(__name__)


class FileReadConnector(Connector):
    """Read the whole file at `location` and store it in the cache."""

    description = "Read a local file"

    @property
    def config(self) -> FileConfig:
        return self.step.connection

    async def execute(self, io: StepIO) -> dict[str, Any]:
        path = Path(self.config.location)

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise IoError(
                f"Cannot read file '{path}': {exc.strerror or exc}",
                details={"location": str(path)},
                **self._error_context(),
            ) from exc

        await io.write(data)

        logger.debug("File read", location=str(path), bytes=len(data))
        return {"location": str(path), "bytes": len(data), "key": io.output_key}


class FileWriteConnector(Connector):
    """Write the cached input verbatim to `location`, creating or truncating it."""

    description = "Write a local file"

    @property
    def config(self) -> FileConfig:
        return self.step.connection

    async def execute(self, io: StepIO) -> dict[str, Any]:
        path = Path(self.config.location)

        # Resolve the input first: a cache miss must not touch the filesystem
        data = await io.read()

        try:
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as exc:
            raise IoError(
                f"Cannot write file '{path}': {exc.strerror or exc}",
                details={"location": str(path)},
                **self._error_context(),
            ) from exc

        logger.debug("File written", location=str(path), bytes=len(data))
        return {"location": str(path), "bytes": len(data), "input_key": io.input_key}
