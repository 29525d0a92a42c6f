"""Decoding of streaming engine responses."""

from rudder.stream.decoder import decode_response, is_json_content_type
from rudder.stream.demux import StreamFrame, demultiplex, encode_frame, iter_frames
from rudder.stream.jsonstream import format_progress_event, iter_progress_events

__all__ = [
    "StreamFrame",
    "decode_response",
    "demultiplex",
    "encode_frame",
    "format_progress_event",
    "is_json_content_type",
    "iter_frames",
    "iter_progress_events",
]
