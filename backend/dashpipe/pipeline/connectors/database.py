"""
Database connectors.

DatabaseReadConnector opens a fresh async SQLAlchemy engine per step
(NullPool — one connection, no pooling), runs the configured query and
stores the first column of the first row as UTF-8 text.

Plain `postgres://` / `postgresql://` DSNs are upgraded to the asyncpg
driver; DSNs that already name a driver (e.g. `sqlite+aiosqlite://`) are
used as-is.

Writing to a database is not supported.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from dashpipe.core.logging import get_logger
from dashpipe.pipeline.cache import StepIO
from dashpipe.pipeline.connector import Connector
from dashpipe.pipeline.errors import ConnectorNotImplementedError, DatabaseError
from dashpipe.pipeline.step import DatabaseConfig

logger = get_logger(__name__)

_ASYNC_SCHEMES = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
}


def to_async_dsn(dsn: str) -> str:
    """Rewrite a driver-less Postgres DSN to its asyncpg form."""
    scheme, sep, rest = dsn.partition("://")
    if not sep:
        return dsn
    return f"{_ASYNC_SCHEMES.get(scheme.lower(), scheme)}://{rest}"


def _redact(dsn: str) -> str:
    """Hide the password part of a DSN for logs and error messages."""
    scheme, sep, rest = dsn.partition("://")
    if not sep or "@" not in rest:
        return dsn
    creds, _, host = rest.rpartition("@")
    user = creds.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


class DatabaseReadConnector(Connector):
    """Run `query` and store the first column of the first row."""

    description = "Query a database"

    def __init__(self, step, index: int = 0) -> None:
        super().__init__(step, index)
        self._engine: AsyncEngine | None = None

    @property
    def config(self) -> DatabaseConfig:
        return self.step.connection

    async def open(self) -> None:
        dsn = to_async_dsn(self.config.connection)
        try:
            self._engine = create_async_engine(dsn, poolclass=NullPool)
        except (SQLAlchemyError, ImportError) as exc:
            # Also covers installed drivers that are not asyncio-capable (sqlite://)
            raise DatabaseError(
                f"Invalid database DSN '{_redact(self.config.connection)}': {exc}",
                **self._error_context(),
            ) from exc

    async def close(self) -> None:
        if self._engine is None:
            return
        try:
            await self._engine.dispose()
        except Exception as exc:
            # The query outcome is already decided; a failed teardown is only reported
            logger.warning(
                "Database engine dispose failed",
                step_name=self.step_name,
                error=str(exc),
            )
        finally:
            self._engine = None

    async def execute(self, io: StepIO) -> dict[str, Any]:
        if self._engine is None:
            await self.open()

        dsn = _redact(self.config.connection)
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text(self.config.query))
                row = result.first()
        except SQLAlchemyError as exc:
            raise DatabaseError(
                f"Query against '{dsn}' failed: {exc}",
                **self._error_context(),
            ) from exc
        except OSError as exc:
            # asyncpg surfaces refused/unreachable hosts as plain OSError
            raise DatabaseError(
                f"Cannot connect to '{dsn}': {exc}",
                **self._error_context(),
            ) from exc

        if row is None:
            raise DatabaseError(
                "Query returned no rows",
                details={"query": self.config.query},
                **self._error_context(),
            )

        value = row[0]
        if value is None:
            raise DatabaseError(
                "Query returned NULL in the first column",
                details={"query": self.config.query},
                **self._error_context(),
            )

        if isinstance(value, (bytes, bytearray, memoryview)):
            data = bytes(value)
        else:
            data = str(value).encode("utf-8")

        await io.write(data)

        logger.debug("Database value read", dsn=dsn, bytes=len(data))
        return {"dsn": dsn, "bytes": len(data), "key": io.output_key}


class DatabaseWriteConnector(Connector):
    """Placeholder for database writes.  Always fails fast."""

    description = "Write to a database (unsupported)"

    async def execute(self, io: StepIO) -> dict[str, Any]:
        raise ConnectorNotImplementedError(
            "Writing to a database is not supported",
            **self._error_context(),
        )
