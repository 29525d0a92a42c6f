from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any


class ByteReader:
    """Exact-length reads over an async iterable of byte chunks.

    httpx hands the body out in chunks of arbitrary size; frame decoding
    needs ``readexactly`` semantics like :class:`asyncio.StreamReader`.
    """

    def __init__(self, chunks: AsyncIterable[bytes]) -> None:
        self._chunks: AsyncIterator[bytes] = chunks.__aiter__()
        self._buffer = bytearray()
        self._eof = False

    async def _fill(self) -> bool:
        """Pull the next non-empty chunk; False once the source is exhausted."""
        while not self._eof:
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._eof = True
                break
            if chunk:
                self._buffer += chunk
                return True
        return False

    async def at_eof(self) -> bool:
        """True when no buffered or pending bytes remain."""
        while not self._buffer:
            if not await self._fill():
                return True
        return False

    async def readexactly(self, n: int) -> bytes:
        """Read exactly *n* bytes.

        Raises:
            asyncio.IncompleteReadError: The source ended first; ``partial``
                holds what was available.
        """
        while len(self._buffer) < n:
            if not await self._fill():
                partial = bytes(self._buffer)
                self._buffer.clear()
                raise asyncio.IncompleteReadError(partial, n)
        data = bytes(self._buffer[:n])
        del self._buffer[:n]
        return data


async def copy_stream(chunks: AsyncIterable[bytes], sink: Any) -> int:
    """Write every chunk to *sink* unchanged; returns the byte count."""
    written = 0
    async for chunk in chunks:
        if chunk:
            sink.write(chunk)
            written += len(chunk)
    return written
