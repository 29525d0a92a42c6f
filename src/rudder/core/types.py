from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


class AuthConfig(BaseModel):
    """Credentials for a single registry.

    Forwarded to the engine as base64url-encoded JSON in the
    ``X-Registry-Auth`` header.  rudder never interprets these values.
    """

    username: str = ""
    password: str = ""
    email: str = ""
    server_address: str = Field(default="", alias="serveraddress")

    model_config = {"populate_by_name": True}

    def to_dict(self) -> dict[str, str]:
        """JSON form with empty fields left out."""
        return self.model_dump(by_alias=True, exclude_defaults=True)

    def to_header(self) -> str:
        return _encode_header(self.to_dict())

    @classmethod
    def from_header(cls, value: str) -> AuthConfig:
        """Inverse of :meth:`to_header`."""
        return cls.model_validate(_decode_header(value))


class AuthConfigSet(BaseModel):
    """Credentials for several registries, keyed by server address.

    Sent in the ``X-Registry-Config`` header.
    """

    configs: dict[str, AuthConfig] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"configs": {addr: auth.to_dict() for addr, auth in self.configs.items()}}

    def to_header(self) -> str:
        return _encode_header(self.to_dict())

    @classmethod
    def from_header(cls, value: str) -> AuthConfigSet:
        """Inverse of :meth:`to_header`."""
        data = _decode_header(value)
        return cls.model_validate({"configs": data.get("configs") or {}})


RegistryAuth = AuthConfig | AuthConfigSet


def _encode_header(data: dict[str, Any]) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _decode_header(value: str) -> dict[str, Any]:
    decoded: dict[str, Any] = json.loads(base64.urlsafe_b64decode(value.encode("ascii")))
    return decoded


class ProgressEvent(BaseModel):
    """One message of the engine's JSON progress stream.

    At most one of ``stream`` (a log line), ``progress`` (a progress bar
    update) and ``error`` (a terminal failure) is meaningful per event;
    ``status`` may accompany any of them.
    """

    status: str = ""
    progress: str = ""
    error: str = ""
    stream: str = ""

    @field_validator("status", "progress", "error", "stream", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class BuildImageOptions(BaseModel):
    """Everything needed to ask the engine for an image build.

    Exactly one build context must be given: ``input_stream`` (a tar archive
    as ``bytes``, a binary file-like object or an async iterable of bytes)
    or ``context_dir`` (a local directory packed on the fly).

    Only the fields listed in :data:`rudder.core.query.BUILD_IMAGE_PARAMS`
    travel in the query string.  Streams and the auth objects travel as the
    request body and headers instead.
    """

    name: str = ""
    suppress_output: bool = False
    no_cache: bool = False
    pull: bool = False
    rm_tmp_container: bool = False
    force_rm_tmp_container: bool = False
    remote: str = ""
    dockerfile: str = ""
    memory: int = 0
    memswap: int = 0
    cpu_shares: int = 0
    cpuset_cpus: str = ""
    build_args: dict[str, str] = Field(default_factory=dict)

    input_stream: Any = None
    output_stream: Any = None
    raw_json_stream: bool = False
    """Copy the engine's JSON events to ``output_stream`` without decoding them."""
    auth: AuthConfig = Field(default_factory=AuthConfig)
    """Sent as ``X-Registry-Auth`` (older engines)."""
    auth_configs: AuthConfigSet = Field(default_factory=AuthConfigSet)
    """Sent as ``X-Registry-Config`` (newer engines)."""
    context_dir: str | Path | None = None

    model_config = {"arbitrary_types_allowed": True}
