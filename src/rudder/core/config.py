from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from rudder.core.constants import DEFAULT_ENDPOINT


class ClientConfig(BaseModel):
    endpoint: str = DEFAULT_ENDPOINT
    tls_cert: Path | None = None
    tls_key: Path | None = None
    tls_ca: Path | None = None
    timeout: float | None = Field(default=None, gt=0)
    """Per-operation timeout in seconds; ``None`` lets long builds stream indefinitely."""
    log_requests: bool = False
    """Log every request through structlog's ``rudder`` logger when no logger is passed."""

    @property
    def uses_tls(self) -> bool:
        return any(p is not None for p in (self.tls_cert, self.tls_key, self.tls_ca))

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Create a :class:`ClientConfig` from environment variables.

        Reads the following env vars (all optional):

        * ``RUDDER_ENDPOINT`` or ``DOCKER_HOST`` → ``endpoint``
        * ``RUDDER_TLS_CERT`` / ``RUDDER_TLS_KEY`` / ``RUDDER_TLS_CA`` → TLS files
        * ``RUDDER_TIMEOUT`` → ``timeout`` (seconds, float)
        * ``RUDDER_LOG_REQUESTS`` → ``log_requests`` (``1``/``true``/``yes``)

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {}

        endpoint = os.environ.get("RUDDER_ENDPOINT") or os.environ.get("DOCKER_HOST")
        if endpoint:
            kwargs["endpoint"] = endpoint

        for field, var in (
            ("tls_cert", "RUDDER_TLS_CERT"),
            ("tls_key", "RUDDER_TLS_KEY"),
            ("tls_ca", "RUDDER_TLS_CA"),
        ):
            value = os.environ.get(var)
            if value:
                kwargs[field] = Path(value)

        timeout_str = os.environ.get("RUDDER_TIMEOUT")
        if timeout_str:
            kwargs["timeout"] = float(timeout_str)

        log_requests = os.environ.get("RUDDER_LOG_REQUESTS")
        if log_requests:
            kwargs["log_requests"] = log_requests.strip().lower() in ("1", "true", "yes")

        return cls(**kwargs)
