"""Tests for stream/jsonstream.py: progress event decoding and rendering."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from conftest import achunks, json_events, split_bytes
from rudder.core.exceptions import DecodeError
from rudder.core.types import ProgressEvent
from rudder.stream.jsonstream import format_progress_event, iter_progress_events


async def _collect(*parts: bytes) -> list[ProgressEvent]:
    return [event async for event in iter_progress_events(achunks(*parts))]


# ---------------------------------------------------------------------------
# iter_progress_events
# ---------------------------------------------------------------------------


async def test_decodes_crlf_separated_events() -> None:
    body = json_events({"stream": "a"}, {"status": "Downloading", "progress": "50%"})
    events = await _collect(body)
    assert events == [
        ProgressEvent(stream="a"),
        ProgressEvent(status="Downloading", progress="50%"),
    ]


async def test_decodes_events_without_separator() -> None:
    events = await _collect(json_events({"status": "a"}, {"status": "b"}, sep=""))
    assert [e.status for e in events] == ["a", "b"]


async def test_event_split_across_chunks() -> None:
    body = json_events({"stream": "Step 1/3 : FROM busybox\n"}, {"status": "Done"})
    events = await _collect(*split_bytes(body, 3))
    assert events == [ProgressEvent(stream="Step 1/3 : FROM busybox\n"), ProgressEvent(status="Done")]


async def test_multibyte_character_split_across_chunks() -> None:
    raw = '{"stream": "größe ✓"}'.encode("utf-8")
    events = await _collect(*split_bytes(raw, 1))
    assert events == [ProgressEvent(stream="größe ✓")]


async def test_unknown_and_null_fields() -> None:
    events = await _collect(b'{"status": null, "id": "abc", "progressDetail": {}}')
    assert events == [ProgressEvent()]


async def test_empty_body_yields_nothing() -> None:
    assert await _collect() == []
    assert await _collect(b"", b"  \r\n") == []


async def test_truncated_event_raises() -> None:
    with pytest.raises(DecodeError, match="malformed JSON"):
        await _collect(b'{"status": "a"}\r\n{"status": "b')


async def test_garbage_raises() -> None:
    with pytest.raises(DecodeError):
        await _collect(b"not json")


async def test_non_object_value_raises() -> None:
    with pytest.raises(DecodeError, match="expected a JSON object"):
        await _collect(b'{"status": "a"} [1, 2]')


async def test_wrong_field_type_raises() -> None:
    with pytest.raises(DecodeError, match="invalid progress message"):
        await _collect(b'{"status": {"nested": true}}')


async def test_invalid_utf8_raises() -> None:
    with pytest.raises(DecodeError, match="UTF-8"):
        await _collect(b'{"stream": "\xff\xfe"}')


async def test_events_before_error_are_yielded() -> None:
    seen: list[ProgressEvent] = []
    with pytest.raises(DecodeError):
        async for event in iter_progress_events(achunks(b'{"status": "ok"} {"status"')):
            seen.append(event)
    assert seen == [ProgressEvent(status="ok")]


async def _open_stream(*parts: bytes, closed: asyncio.Event) -> AsyncIterator[bytes]:
    """Yield *parts*, then hold the body open like a live engine until *closed* is set."""
    for part in parts:
        yield part
    await closed.wait()


async def test_malformed_event_fails_without_waiting_for_eof() -> None:
    closed = asyncio.Event()
    seen: list[ProgressEvent] = []

    async def consume() -> None:
        body = _open_stream(b'{"status": "ok"}\r\n{"status": oops}\r\n', closed=closed)
        async for event in iter_progress_events(body):
            seen.append(event)

    with pytest.raises(DecodeError, match="malformed JSON message"):
        await asyncio.wait_for(consume(), 1.0)
    closed.set()
    assert seen == [ProgressEvent(status="ok")]


async def test_mismatched_bracket_fails_immediately() -> None:
    closed = asyncio.Event()
    body = _open_stream(b'{"status": ]}', closed=closed)
    with pytest.raises(DecodeError, match="malformed JSON message"):
        await asyncio.wait_for(anext(iter_progress_events(body)), 1.0)
    closed.set()


async def test_event_is_yielded_while_stream_stays_open() -> None:
    closed = asyncio.Event()
    events = iter_progress_events(_open_stream(b'{"status": "a"}', closed=closed))
    assert await asyncio.wait_for(anext(events), 1.0) == ProgressEvent(status="a")
    closed.set()
    assert [e async for e in events] == []


async def test_braces_and_quotes_inside_strings() -> None:
    body = json_events({"stream": 'a } ] { [ "quoted" \\ b'}, {"status": "next"}, sep="")
    events = await _collect(*split_bytes(body, 1))
    assert events == [ProgressEvent(stream='a } ] { [ "quoted" \\ b'), ProgressEvent(status="next")]


@pytest.mark.parametrize("size", [1, 2, 3, 7])
async def test_escapes_split_across_chunks(size: int) -> None:
    raw = b'{"stream": "x\\\\"} {"stream": "\\"}\\u00e9"}'
    events = await _collect(*split_bytes(raw, size))
    assert events == [ProgressEvent(stream="x\\"), ProgressEvent(stream='"}é')]


# ---------------------------------------------------------------------------
# format_progress_event
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("event", "expected"),
    [
        (ProgressEvent(stream="a"), "a"),
        (ProgressEvent(status="Downloading", progress="50%"), "Downloading 50%\rDownloading\n"),
        (ProgressEvent(status="Done"), "Done\n"),
        (ProgressEvent(stream="line\n", status="s"), "line\ns\n"),
        (ProgressEvent(progress="[==>  ]"), " [==>  ]\r"),
        (ProgressEvent(), ""),
    ],
)
def test_format_progress_event(event: ProgressEvent, expected: str) -> None:
    assert format_progress_event(event) == expected


def test_stream_wins_over_progress() -> None:
    assert format_progress_event(ProgressEvent(stream="x", progress="50%")) == "x"
