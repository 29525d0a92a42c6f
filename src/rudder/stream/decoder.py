from __future__ import annotations

from contextlib import aclosing
from typing import Any

import httpx

from rudder.core.constants import JSON_CONTENT_TYPE
from rudder.core.exceptions import RemoteBuildError
from rudder.stream.demux import demultiplex
from rudder.stream.jsonstream import format_progress_event, iter_progress_events
from rudder.stream.reader import copy_stream


def is_json_content_type(value: str | None) -> bool:
    """True when *value* names the JSON message type.

    Looser than an exact ``== "application/json"`` comparison: the media
    type is matched case-insensitively and parameters such as ``charset``
    are ignored.  Other JSON-flavoured types (``application/problem+json``)
    still take the binary path.
    """
    if not value:
        return False
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type == JSON_CONTENT_TYPE


async def decode_response(
    response: httpx.Response,
    stdout: Any,
    stderr: Any | None = None,
    *,
    raw_json_stream: bool = False,
    raw_terminal: bool = False,
) -> None:
    """Decode a streaming engine response into binary sinks.

    ``application/json`` bodies are progress events; anything else is a
    multiplexed stdout/stderr stream.

    Args:
        response: A response opened with ``stream=True`` and not yet read.
        stdout: Binary sink with a ``write(bytes)`` method.
        stderr: Binary sink for the stderr channel; ``None`` discards it.
        raw_json_stream: Copy JSON bodies verbatim instead of decoding them.
        raw_terminal: Copy non-JSON bodies verbatim instead of
            demultiplexing them (a terminal has a single channel).

    Raises:
        RemoteBuildError: An event carried an ``error``; decoding stops there.
        DecodeError: The body does not match its framing.
    """
    chunks = response.aiter_bytes()

    if is_json_content_type(response.headers.get("content-type")):
        if raw_json_stream:
            await copy_stream(chunks, stdout)
            return
        async with aclosing(iter_progress_events(chunks)) as events:
            async for event in events:
                if event.error:
                    raise RemoteBuildError(event.error)
                rendered = format_progress_event(event)
                if rendered:
                    stdout.write(rendered.encode("utf-8"))
        return

    if raw_terminal:
        await copy_stream(chunks, stdout)
    else:
        await demultiplex(chunks, stdout, stderr)
