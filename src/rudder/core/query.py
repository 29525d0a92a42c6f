from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel


@dataclass(frozen=True)
class QueryParam:
    """Maps one attribute of an options model to a query-string key."""

    attr: str
    key: str


# Field → query key for BuildImageOptions.  Streams, auth and context_dir
# travel as body or headers and have no entry here.
BUILD_IMAGE_PARAMS: tuple[QueryParam, ...] = (
    QueryParam("name", "t"),
    QueryParam("suppress_output", "q"),
    QueryParam("no_cache", "nocache"),
    QueryParam("pull", "pull"),
    QueryParam("rm_tmp_container", "rm"),
    QueryParam("force_rm_tmp_container", "forcerm"),
    QueryParam("remote", "remote"),
    QueryParam("dockerfile", "dockerfile"),
    QueryParam("memory", "memory"),
    QueryParam("memswap", "memswap"),
    QueryParam("cpu_shares", "cpushares"),
    QueryParam("cpuset_cpus", "cpusetcpus"),
    QueryParam("build_args", "buildargs"),
)


def _query_value(value: Any) -> str | None:
    """Render *value* for the query string, or ``None`` to omit it."""
    if value is None:
        return None
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "1" if value else None
    if isinstance(value, int):
        return str(value) if value > 0 else None
    if isinstance(value, float):
        return repr(value) if value > 0 else None
    if isinstance(value, str):
        return value or None
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    if isinstance(value, Mapping):
        if not value:
            return None
        return json.dumps(dict(value), separators=(",", ":"))
    raise TypeError(f"cannot encode {type(value).__name__} as a query value")


def encode_query(options: Any, params: tuple[QueryParam, ...]) -> str:
    """Encode the mapped attributes of *options* as a URL query string.

    Empty strings, ``False``, zero or negative numbers, empty mappings and
    ``None`` are left out entirely.  ``True`` becomes ``1``, positive numbers
    their decimal form, and mappings or models their compact JSON form.

    Args:
        options: Any object carrying the attributes named in *params*.
        params: The explicit field → key mapping for that options type.

    Returns:
        The ``application/x-www-form-urlencoded`` query (without ``?``).
    """
    if options is None:
        return ""
    items: list[tuple[str, str]] = []
    for param in params:
        rendered = _query_value(getattr(options, param.attr))
        if rendered is not None:
            items.append((param.key, rendered))
    return urlencode(items)
