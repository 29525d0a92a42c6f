"""Demultiplexing of the engine's combined stdout/stderr stream.

Each frame is an 8-byte header followed by its payload::

    ┌──────────┬──────────────┬──────────────────────┬─────────────────┐
    │ channel  │ reserved (3) │ length (4, big-end.) │ payload         │
    └──────────┴──────────────┴──────────────────────┴─────────────────┘

Frames repeat until EOF, which must fall exactly on a frame boundary.
"""

from __future__ import annotations

import asyncio
import struct
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

from rudder.core.constants import StreamChannel
from rudder.core.exceptions import DecodeError
from rudder.stream.reader import ByteReader

_HEADER = struct.Struct(">B3xI")
HEADER_SIZE = _HEADER.size


@dataclass(frozen=True)
class StreamFrame:
    channel: StreamChannel
    payload: bytes

    @property
    def length(self) -> int:
        return len(self.payload)


def encode_frame(channel: StreamChannel, payload: bytes) -> bytes:
    """Build one frame: header plus *payload*."""
    return _HEADER.pack(int(channel), len(payload)) + payload


async def iter_frames(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamFrame]:
    """Yield frames from a multiplexed body.

    Raises:
        DecodeError: Unknown channel selector, or EOF inside a header or
            payload.
    """
    reader = ByteReader(chunks)
    while not await reader.at_eof():
        try:
            header = await reader.readexactly(HEADER_SIZE)
        except asyncio.IncompleteReadError as exc:
            raise DecodeError(
                f"truncated frame header: got {len(exc.partial)} of {HEADER_SIZE} bytes"
            ) from exc

        selector, length = _HEADER.unpack(header)
        try:
            channel = StreamChannel(selector)
        except ValueError as exc:
            raise DecodeError(
                f"unknown stream channel {selector}", details={"header": header.hex()}
            ) from exc

        try:
            payload = await reader.readexactly(length)
        except asyncio.IncompleteReadError as exc:
            raise DecodeError(
                f"truncated frame payload: got {len(exc.partial)} of {length} bytes",
                details={"channel": channel.name.lower()},
            ) from exc
        yield StreamFrame(channel=channel, payload=payload)


async def demultiplex(chunks: AsyncIterable[bytes], stdout: Any, stderr: Any | None) -> int:
    """Split a multiplexed body into *stdout* and *stderr*.

    A ``None`` *stderr* discards that channel.

    Returns:
        Number of payload bytes written across both sinks.
    """
    written = 0
    async for frame in iter_frames(chunks):
        sink = stdout if frame.channel is StreamChannel.STDOUT else stderr
        if sink is None:
            continue
        sink.write(frame.payload)
        written += frame.length
    return written
