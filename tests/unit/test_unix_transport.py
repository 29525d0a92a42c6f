"""Tests for transport/unix.py against a real Unix-socket HTTP server."""
from __future__ import annotations

import io
import socket
from pathlib import Path

import httpx
import pytest

from conftest import StubEngine, json_events
from rudder.core.client import RudderClient
from rudder.core.endpoint import resolve_endpoint
from rudder.core.exceptions import APIError, DecodeError, EngineConnectionRefusedError, RemoteBuildError
from rudder.core.types import BuildImageOptions
from rudder.stream.decoder import decode_response
from rudder.transport.unix import UnixSocketTransport


def _transport(engine: StubEngine) -> UnixSocketTransport:
    return UnixSocketTransport(resolve_endpoint(f"unix://{engine.socket_path}"), timeout=5)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_rejects_tcp_endpoint() -> None:
    with pytest.raises(ValueError, match="unix endpoint"):
        UnixSocketTransport(resolve_endpoint("tcp://engine:2375"))


def test_base_url_is_placeholder_host() -> None:
    transport = UnixSocketTransport(resolve_endpoint("unix:///var/run/docker.sock"))
    assert transport.base_url == "http://localhost"


# ---------------------------------------------------------------------------
# Connection lifetime
# ---------------------------------------------------------------------------


async def test_request_line_and_headers(stub_engine: StubEngine) -> None:
    transport = _transport(stub_engine)
    async with transport.send("GET", "/_ping"):
        pass
    head = stub_engine.request_heads[0].lower()
    assert head.startswith(b"get /_ping http/1.1\r\n")
    assert b"\r\nhost: localhost\r\n" in head
    assert b"user-agent: rudder/" in head


async def test_one_connection_per_request(stub_engine: StubEngine) -> None:
    transport = _transport(stub_engine)
    await transport.connect()
    for _ in range(3):
        async with transport.send("GET", "/_ping") as response:
            await response.aread()
    await stub_engine.wait_closed(3)
    assert stub_engine.connections == 3
    assert stub_engine.closed == 3
    await transport.close()


async def test_connection_closed_after_success(stub_engine: StubEngine) -> None:
    stub_engine.body = json_events({"status": "ok"})
    out = io.BytesIO()
    async with _transport(stub_engine).send("POST", "/build", body=b"tar") as response:
        await decode_response(response, out)
    await stub_engine.wait_closed(1)
    assert out.getvalue() == b"ok\n"
    assert stub_engine.request_bodies == [b"tar"]


async def test_connection_closed_after_api_error(stub_engine: StubEngine) -> None:
    stub_engine.status, stub_engine.reason = 500, "Internal Server Error"
    stub_engine.content_type = "text/plain"
    stub_engine.body = b"engine exploded"
    with pytest.raises(APIError) as exc_info:
        async with _transport(stub_engine).send("POST", "/build"):
            pass
    assert exc_info.value.status == 500
    assert exc_info.value.message == "engine exploded"
    await stub_engine.wait_closed(1)


async def test_connection_closed_after_decode_error(stub_engine: StubEngine) -> None:
    stub_engine.body = b'{"stream": "a'
    with pytest.raises(DecodeError):
        async with _transport(stub_engine).send("POST", "/build") as response:
            await decode_response(response, io.BytesIO())
    await stub_engine.wait_closed(1)


# ---------------------------------------------------------------------------
# Connection errors
# ---------------------------------------------------------------------------


async def test_socket_not_listening_is_refused(short_tmp: Path) -> None:
    path = short_tmp / "dead.sock"
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.bind(str(path))
    try:
        transport = UnixSocketTransport(resolve_endpoint(f"unix://{path}"))
        with pytest.raises(EngineConnectionRefusedError) as exc_info:
            async with transport.send("GET", "/_ping"):
                pass
        assert exc_info.value.is_retryable
    finally:
        sock.close()


async def test_missing_socket_is_plain_connect_error(short_tmp: Path) -> None:
    transport = UnixSocketTransport(resolve_endpoint(f"unix://{short_tmp}/missing.sock"))
    with pytest.raises(httpx.ConnectError) as exc_info:
        async with transport.send("GET", "/_ping"):
            pass
    assert not isinstance(exc_info.value, EngineConnectionRefusedError)


# ---------------------------------------------------------------------------
# End to end through the client
# ---------------------------------------------------------------------------


async def test_build_image_over_unix_socket(stub_engine: StubEngine) -> None:
    stub_engine.body = json_events(
        {"stream": "Step 1/1 : FROM busybox\n"},
        {"status": "Successfully built 0123abcd"},
    )
    out = io.BytesIO()
    async with await RudderClient.connect(endpoint=f"unix://{stub_engine.socket_path}") as client:
        assert isinstance(client.transport, UnixSocketTransport)
        await client.build_image(
            BuildImageOptions(name="app:latest", input_stream=b"tar-bytes", output_stream=out)
        )
    assert out.getvalue() == b"Step 1/1 : FROM busybox\nSuccessfully built 0123abcd\n"
    head = stub_engine.request_heads[0].lower()
    assert head.startswith(b"post /build?t=app%3alatest http/1.1\r\n")
    assert b"content-type: application/tar" in head
    assert stub_engine.request_bodies == [b"tar-bytes"]
    await stub_engine.wait_closed(1)


async def test_build_failure_over_unix_socket(stub_engine: StubEngine) -> None:
    stub_engine.body = json_events({"stream": "a"}, {"error": "build failed"}, {"stream": "b"})
    out = io.BytesIO()
    async with await RudderClient.connect(endpoint=f"unix://{stub_engine.socket_path}") as client:
        with pytest.raises(RemoteBuildError, match="build failed"):
            await client.build_image(BuildImageOptions(input_stream=b"t", output_stream=out))
    assert out.getvalue() == b"a"
    await stub_engine.wait_closed(1)
