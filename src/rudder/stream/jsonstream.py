from __future__ import annotations

import codecs
import json
import re
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from rudder.core.exceptions import DecodeError
from rudder.core.types import ProgressEvent

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_STRUCTURAL = re.compile(r'["\\{}\[\]]')


class _ObjectFramer:
    """Finds where a top-level JSON object ends without parsing it.

    Scan state survives between calls, so each byte of a large object
    arriving in many chunks is looked at once.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.scanned = 0
        self.depth = 0
        self.in_string = False
        self.escaped = False

    def shift(self, offset: int) -> None:
        self.scanned = max(self.scanned - offset, 0)

    def find_end(self, buffer: str, start: int) -> int | None:
        """Index just past the object opened at *start*, or ``None`` if it is incomplete."""
        scan = max(self.scanned, start)
        if self.escaped and scan < len(buffer):
            self.escaped = False
            scan += 1
        for match in _STRUCTURAL.finditer(buffer, scan):
            i = match.start()
            if i < scan:
                continue
            char = match.group()
            if self.in_string:
                if char == "\\":
                    if i + 1 >= len(buffer):
                        self.escaped = True
                        self.scanned = len(buffer)
                        return None
                    scan = i + 2
                elif char == '"':
                    self.in_string = False
            elif char == '"':
                self.in_string = True
            elif char in "{[":
                self.depth += 1
            elif char in "}]":
                self.depth -= 1
                if self.depth == 0:
                    self.reset()
                    return i + 1
        self.scanned = len(buffer)
        return None


async def iter_progress_events(chunks: AsyncIterable[bytes]) -> AsyncIterator[ProgressEvent]:
    """Decode a concatenation of JSON objects into :class:`ProgressEvent` s.

    Values need no delimiter between them; a value split across chunks is
    completed by reading further.  EOF between values ends the stream.  A
    value is parsed as soon as its closing brace arrives, so malformed input
    fails right away instead of waiting for the body to end.

    Raises:
        DecodeError: Invalid UTF-8, malformed JSON, a value that is not an
            object, or a value cut off by EOF.
    """
    framer = _ObjectFramer()
    text = codecs.getincrementaldecoder("utf-8")()
    source = chunks.__aiter__()
    buffer = ""
    pos = 0
    eof = False

    while True:
        pos = _WHITESPACE.match(buffer, pos).end()  # type: ignore[union-attr]
        if pos < len(buffer):
            if buffer[pos] != "{":
                raise DecodeError(f"expected a JSON object, got {buffer[pos:pos + 20]!r}")
            end = framer.find_end(buffer, pos)
            if end is not None:
                try:
                    value = json.loads(buffer[pos:end])
                except json.JSONDecodeError as exc:
                    raise DecodeError(f"malformed JSON message: {exc}") from exc
                try:
                    event = ProgressEvent.model_validate(value)
                except ValidationError as exc:
                    raise DecodeError(f"invalid progress message: {exc}") from exc
                pos = end
                yield event
                continue
            if eof:
                raise DecodeError("truncated JSON message at end of stream")
        elif eof:
            return

        # Need more input for the value starting at pos.
        try:
            chunk = await source.__anext__()
        except StopAsyncIteration:
            eof = True
            chunk = b""
        try:
            decoded = text.decode(chunk, final=eof)
        except UnicodeDecodeError as exc:
            raise DecodeError(f"response is not valid UTF-8: {exc}") from exc
        buffer = buffer[pos:] + decoded
        framer.shift(pos)
        pos = 0


def format_progress_event(event: ProgressEvent) -> str:
    """Terminal rendering of one non-error event.

    A log line is written as-is, a progress update ends in ``\\r`` so the
    next one overwrites it, and a status is written on its own line.
    """
    out = ""
    if event.stream:
        out += event.stream
    elif event.progress:
        out += f"{event.status} {event.progress}\r"
    if event.status:
        out += f"{event.status}\n"
    return out
