"""
HTTP connectors — fetch a response body into the cache, or send cached
bytes as a request body.

The configured method is honoured (read defaults to GET, write to POST)
and any non-2xx response is a NetworkError.  A fresh httpx.AsyncClient is
opened per step and closed when the step ends.

Usage::

    HttpReadConnector(step, index, transport=httpx.MockTransport(handler))
"""

from __future__ import annotations

from typing import Any

import httpx

from dashpipe.core.config import settings
from dashpipe.core.constants import HttpMethod
from dashpipe.core.logging import get_logger
from dashpipe.pipeline.cache import StepIO
from dashpipe.pipeline.connector import Connector
from dashpipe.pipeline.errors import NetworkError
from dashpipe.pipeline.step import HttpConfig, Step

logger = get_logger(__name__)

# Response bodies attached to errors are cut to this many characters
MAX_ERROR_BODY = 500


class _HttpConnector(Connector):
    """Shared client lifecycle and request handling."""

    default_method: HttpMethod = HttpMethod.GET

    def __init__(
        self,
        step: Step,
        index: int = 0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            step: The step being executed.
            index: Position of the step in the pipeline.
            transport: Optional httpx transport (tests inject a MockTransport).
            timeout: Per-request timeout in seconds; defaults to settings.
        """
        super().__init__(step, index)
        self._transport = transport
        self._timeout = timeout if timeout is not None else settings.DASH_HTTP_TIMEOUT_SECONDS
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> HttpConfig:
        return self.step.connection

    @property
    def method(self) -> HttpMethod:
        return self.config.method or self.default_method

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send(self, content: bytes | None = None) -> httpx.Response:
        """Issue the configured request; raise NetworkError on any failure."""
        if self._client is None:
            await self.open()

        url = self.config.url
        try:
            response = await self._client.request(
                self.method.value,
                url,
                headers=self.config.headers or {},
                content=content,
            )
        except httpx.InvalidURL as exc:
            raise NetworkError(
                f"Invalid URL '{url}': {exc}",
                **self._error_context(),
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"{self.method} {url} failed: {exc!r}",
                **self._error_context(),
            ) from exc

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY]
            raise NetworkError(
                f"{self.method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=body,
                **self._error_context(),
            )

        return response


class HttpReadConnector(_HttpConnector):
    """Request `url` and store the full response body."""

    description = "Fetch an HTTP resource"
    default_method = HttpMethod.GET

    async def execute(self, io: StepIO) -> dict[str, Any]:
        response = await self._send()
        data = response.content
        await io.write(data)

        logger.debug(
            "HTTP resource fetched",
            method=str(self.method),
            url=self.config.url,
            status_code=response.status_code,
            bytes=len(data),
        )
        return {
            "method": str(self.method),
            "url": self.config.url,
            "status_code": response.status_code,
            "bytes": len(data),
            "key": io.output_key,
        }


class HttpWriteConnector(_HttpConnector):
    """Send the cached input as the request body to `url`."""

    description = "Send data to an HTTP endpoint"
    default_method = HttpMethod.POST

    async def execute(self, io: StepIO) -> dict[str, Any]:
        data = await io.read()
        response = await self._send(content=data)

        logger.debug(
            "HTTP payload sent",
            method=str(self.method),
            url=self.config.url,
            status_code=response.status_code,
            bytes=len(data),
        )
        return {
            "method": str(self.method),
            "url": self.config.url,
            "status_code": response.status_code,
            "bytes": len(data),
            "input_key": io.input_key,
        }
