"""
ProcessRunConnector — execute a named program and capture its stdout.

The program is started directly (no shell, no arguments) with stdin
connected to /dev/null.  Its environment is the current process
environment, overlaid with the pipeline-wide `env` and then the step's
own `env`.  A non-zero exit status is a ProcessError.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

from dashpipe.core.logging import get_logger
from dashpipe.pipeline.cache import StepIO
from dashpipe.pipeline.connector import Connector
from dashpipe.pipeline.errors import ProcessError
from dashpipe.pipeline.step import Step

logger = get_logger(__name__)

# stderr attached to errors is cut to this many characters
MAX_ERROR_STDERR = 2000


class ProcessRunConnector(Connector):
    """Run `step.run` and store its standard output."""

    description = "Run an external program"

    def __init__(
        self,
        step: Step,
        index: int = 0,
        *,
        base_env: dict[str, str] | None = None,
    ) -> None:
        """
        Args:
            step: The run step.
            index: Position of the step in the pipeline.
            base_env: Pipeline-wide environment overlay (PipelineConfig.env).
        """
        super().__init__(step, index)
        self._base_env = base_env or {}
        self._process: asyncio.subprocess.Process | None = None

    @property
    def program(self) -> str:
        return self.step.run

    def build_env(self) -> dict[str, str]:
        """os.environ ← pipeline env ← step env."""
        env = dict(os.environ)
        env.update(self._base_env)
        env.update(self.step.env or {})
        return env

    async def execute(self, io: StepIO) -> dict[str, Any]:
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.program,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.build_env(),
            )
        except OSError as exc:
            raise ProcessError(
                f"Cannot start '{self.program}': {exc.strerror or exc}",
                **self._error_context(),
            ) from exc

        stdout, stderr = await self._process.communicate()
        returncode = self._process.returncode
        stderr_text = stderr.decode("utf-8", errors="replace")[:MAX_ERROR_STDERR]

        if returncode != 0:
            raise ProcessError(
                f"'{self.program}' exited with status {returncode}",
                returncode=returncode,
                stderr=stderr_text,
                **self._error_context(),
            )

        await io.write(stdout)

        logger.debug(
            "Process finished",
            program=self.program,
            returncode=returncode,
            bytes=len(stdout),
        )
        return {
            "program": self.program,
            "returncode": returncode,
            "bytes": len(stdout),
            "key": io.output_key,
        }

    async def close(self) -> None:
        """Kill and reap the child if the step was cancelled mid-flight."""
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
        logger.warning("Process killed", program=self.program, pid=process.pid)
