"""
SharedCache — the in-memory key/value store threading data between steps.

One cache lives for the duration of one pipeline run.  Every access goes
through a single asyncio.Lock, held only for the dict operation and never
across I/O.  Values are immutable `bytes`, so callers always get a value
they can keep without copying.

Keys:
    - each producing step stores its output under its own key
      (step name, or its index when unnamed)
    - the same bytes are mirrored under CURRENT_KEY ("_"), the
      "current value" slot that write steps read by default
"""

from __future__ import annotations

import asyncio

from dashpipe.core.constants import CURRENT_KEY
from dashpipe.pipeline.errors import CacheClosedError, CacheMissError


def _as_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class SharedCache:
    """Run-scoped mapping of str → bytes, safe under concurrent tasks."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    async def get(self, key: str) -> bytes | None:
        """Return the bytes stored under `key`, or None."""
        self._check_open()
        async with self._lock:
            return self._data.get(key)

    async def put(self, key: str, data: bytes | bytearray | memoryview | str) -> None:
        """Store `data` under `key`, replacing any previous value."""
        self._check_open()
        value = _as_bytes(data)
        async with self._lock:
            self._data[key] = value

    async def put_many(self, keys: list[str], data: bytes | bytearray | memoryview | str) -> None:
        """Store the same value under several keys in one critical section."""
        self._check_open()
        value = _as_bytes(data)
        async with self._lock:
            for key in keys:
                self._data[key] = value

    async def keys(self) -> list[str]:
        self._check_open()
        async with self._lock:
            return list(self._data)

    async def snapshot(self) -> dict[str, bytes]:
        """Shallow copy of the whole mapping."""
        self._check_open()
        async with self._lock:
            return dict(self._data)

    def close(self) -> None:
        """Drop all entries.  Any later access is a programming error."""
        self._data.clear()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise CacheClosedError("SharedCache used after close()")


class StepIO:
    """
    Scoped cache handle given to one connector invocation.

    Args:
        cache: The run's SharedCache.
        output_key: Key this step's output is stored under.
        input_key: Key this step reads from (write steps).
        step_name: Label used in CacheMissError messages.
        step_index: Position of the step in the pipeline.
    """

    def __init__(
        self,
        cache: SharedCache,
        output_key: str,
        input_key: str = CURRENT_KEY,
        step_name: str | None = None,
        step_index: int | None = None,
    ) -> None:
        self.cache = cache
        self.output_key = output_key
        self.input_key = input_key
        self.step_name = step_name
        self.step_index = step_index

    async def read(self) -> bytes:
        """Return the input bytes or raise CacheMissError."""
        data = await self.cache.get(self.input_key)
        if data is None:
            raise CacheMissError(
                f"No cached value under key '{self.input_key}'; "
                "a read or run step must produce it first",
                key=self.input_key,
                step_name=self.step_name,
                step_index=self.step_index,
            )
        return data

    async def write(self, data: bytes | bytearray | memoryview | str) -> None:
        """Store this step's output under its own key and the current-value key."""
        keys = [self.output_key]
        if self.output_key != CURRENT_KEY:
            keys.append(CURRENT_KEY)
        await self.cache.put_many(keys, data)
