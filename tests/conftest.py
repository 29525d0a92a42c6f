"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import tempfile
from collections.abc import AsyncGenerator, AsyncIterator, Generator, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
import structlog

from rudder.core.endpoint import resolve_endpoint
from rudder.transport.http import HttpTransport


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()


# ---------------------------------------------------------------------------
# Body helpers
# ---------------------------------------------------------------------------


def json_events(*events: dict[str, Any], sep: str = "\r\n") -> bytes:
    """Concatenate *events* the way the engine streams them."""
    return sep.join(json.dumps(e) for e in events).encode("utf-8")


async def achunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


def split_bytes(data: bytes, size: int) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


# ---------------------------------------------------------------------------
# httpx.MockTransport-backed HTTP transport
# ---------------------------------------------------------------------------


@dataclass
class RecordingHandler:
    """MockTransport handler that records requests and replays one response."""

    status: int = 200
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=lambda: {"content-type": "application/json"})
    error: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, headers=self.headers, content=self.content)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
async def http_transport(handler: RecordingHandler) -> AsyncGenerator[HttpTransport, None]:
    transport = HttpTransport(
        resolve_endpoint("tcp://engine.test:2375"),
        transport=httpx.MockTransport(handler),
    )
    await transport.connect()
    yield transport
    await transport.close()


# ---------------------------------------------------------------------------
# Real Unix-socket engine stub
# ---------------------------------------------------------------------------


@dataclass
class StubEngine:
    """Minimal HTTP/1.1 server on a Unix socket.

    Answers every request with the configured response, keeps the
    connection open afterwards, and records when the client hangs up.
    """

    socket_path: str
    status: int = 200
    reason: str = "OK"
    content_type: str = "application/json"
    body: bytes = b""
    connections: int = 0
    closed: int = 0
    request_heads: list[bytes] = field(default_factory=list)
    request_bodies: list[bytes] = field(default_factory=list)
    _closed_event: asyncio.Event = field(default_factory=asyncio.Event)

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        try:
            while True:
                try:
                    head = await reader.readuntil(b"\r\n\r\n")
                except (asyncio.IncompleteReadError, ConnectionError):
                    break
                self.request_heads.append(head)
                length = 0
                for line in head.split(b"\r\n"):
                    name, _, value = line.partition(b":")
                    if name.strip().lower() == b"content-length":
                        length = int(value.strip())
                self.request_bodies.append(await reader.readexactly(length) if length else b"")
                writer.write(
                    f"HTTP/1.1 {self.status} {self.reason}\r\n"
                    f"Content-Type: {self.content_type}\r\n"
                    f"Content-Length: {len(self.body)}\r\n\r\n".encode("ascii")
                    + self.body
                )
                await writer.drain()
        finally:
            self.closed += 1
            self._closed_event.set()
            writer.close()

    async def wait_closed(self, count: int, timeout: float = 2.0) -> None:
        async def _wait() -> None:
            while self.closed < count:
                self._closed_event.clear()
                await self._closed_event.wait()

        await asyncio.wait_for(_wait(), timeout)


@pytest.fixture
def short_tmp() -> Generator[Path, None, None]:
    # AF_UNIX paths are limited to ~108 bytes; pytest's tmp_path can exceed that.
    with tempfile.TemporaryDirectory(prefix="rudder-") as d:
        yield Path(d)


@pytest.fixture
async def stub_engine(short_tmp: Path) -> AsyncGenerator[StubEngine, None]:
    engine = StubEngine(socket_path=str(short_tmp / "engine.sock"))
    server = await asyncio.start_unix_server(engine.handle, path=engine.socket_path)
    try:
        yield engine
    finally:
        server.close()
        await server.wait_closed()


def frames(parts: Iterable[tuple[int, bytes]]) -> bytes:
    """Multiplexed body from ``(channel, payload)`` pairs."""
    out = b""
    for channel, payload in parts:
        out += bytes([channel, 0, 0, 0]) + len(payload).to_bytes(4, "big") + payload
    return out
