"""Tests for the HTTP connectors, using httpx.MockTransport."""

import asyncio

import httpx
import pytest

from dashpipe.core.constants import CURRENT_KEY
from dashpipe.pipeline.connectors import HttpReadConnector, HttpWriteConnector
from dashpipe.pipeline.errors import CacheMissError, NetworkError


async def _execute(connector, io):
    async with connector:
        return await connector.execute(io)


def test_read_defaults_to_get_and_stores_body(make_step, make_io, cache, http_handler):
    handler = http_handler(200, b'{"items": []}')
    step = make_step(name="api", read={"http": {"url": "https://api.example.com/items"}})

    metadata = asyncio.run(
        _execute(HttpReadConnector(step, 0, transport=handler.transport), make_io(output_key="api"))
    )

    assert handler.requests[0].method == "GET"
    assert str(handler.requests[0].url) == "https://api.example.com/items"
    assert asyncio.run(cache.get("api")) == b'{"items": []}'
    assert asyncio.run(cache.get(CURRENT_KEY)) == b'{"items": []}'
    assert metadata["status_code"] == 200


def test_read_honours_method_and_headers(make_step, make_io, http_handler):
    handler = http_handler(201, b"created")
    step = make_step(
        read={
            "https": {
                "url": "https://api.example.com/search",
                "method": "POST",
                "headers": {"Authorization": "Bearer abc", "X-Trace": "1"},
            }
        }
    )

    asyncio.run(_execute(HttpReadConnector(step, 0, transport=handler.transport), make_io()))

    request = handler.requests[0]
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Bearer abc"
    assert request.headers["X-Trace"] == "1"


def test_read_server_error_is_network_error_and_cache_unset(make_step, make_io, cache, http_handler):
    handler = http_handler(500, b"boom")
    step = make_step(read={"http": {"url": "https://api.example.com/broken"}})

    with pytest.raises(NetworkError) as excinfo:
        asyncio.run(_execute(HttpReadConnector(step, 0, transport=handler.transport), make_io()))

    assert excinfo.value.status_code == 500
    assert excinfo.value.response_body == "boom"
    assert asyncio.run(cache.get(CURRENT_KEY)) is None


def test_read_transport_failure_is_network_error(make_step, make_io, http_handler):
    handler = http_handler(exc=httpx.ConnectError("connection refused"))
    step = make_step(read={"http": {"url": "https://unreachable.example.com"}})

    with pytest.raises(NetworkError) as excinfo:
        asyncio.run(_execute(HttpReadConnector(step, 0, transport=handler.transport), make_io()))

    assert excinfo.value.status_code is None


def test_read_timeout_is_network_error(make_step, make_io, http_handler):
    handler = http_handler(exc=httpx.ReadTimeout("timed out"))
    step = make_step(read={"http": {"url": "https://slow.example.com"}})

    with pytest.raises(NetworkError):
        asyncio.run(_execute(HttpReadConnector(step, 0, transport=handler.transport), make_io()))


def test_write_defaults_to_post_with_cached_body(make_step, make_io, cache, http_handler):
    handler = http_handler(200)
    step = make_step(write={"http": {"url": "https://sink.example.com/upload"}})
    asyncio.run(cache.put(CURRENT_KEY, b"payload"))

    metadata = asyncio.run(
        _execute(HttpWriteConnector(step, 1, transport=handler.transport), make_io())
    )

    request = handler.requests[0]
    assert request.method == "POST"
    assert request.content == b"payload"
    assert metadata["bytes"] == 7


def test_write_honours_put(make_step, make_io, cache, http_handler):
    handler = http_handler(204)
    step = make_step(write={"http": {"url": "https://sink.example.com/doc", "method": "put"}})
    asyncio.run(cache.put(CURRENT_KEY, b"doc"))

    asyncio.run(_execute(HttpWriteConnector(step, 1, transport=handler.transport), make_io()))

    assert handler.requests[0].method == "PUT"


def test_write_rejected_status_is_network_error(make_step, make_io, cache, http_handler):
    handler = http_handler(403, b"forbidden")
    step = make_step(write={"http": {"url": "https://sink.example.com/upload"}})
    asyncio.run(cache.put(CURRENT_KEY, b"payload"))

    with pytest.raises(NetworkError) as excinfo:
        asyncio.run(_execute(HttpWriteConnector(step, 1, transport=handler.transport), make_io()))

    assert excinfo.value.status_code == 403


def test_write_without_cached_input_sends_nothing(make_step, make_io, http_handler):
    handler = http_handler(200)
    step = make_step(write={"http": {"url": "https://sink.example.com/upload"}})

    with pytest.raises(CacheMissError):
        asyncio.run(_execute(HttpWriteConnector(step, 0, transport=handler.transport), make_io()))

    assert handler.requests == []
