from __future__ import annotations

from typing import Any


class RudderError(Exception):
    """Base exception for all rudder errors.

    Attributes:
        details: Arbitrary key/value context about the error.
        status_code: HTTP status code when the error originates from an
            engine API response (``None`` when not applicable).
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False


# ---------------------------------------------------------------------------
# Configuration errors, detected before any network I/O
# ---------------------------------------------------------------------------


class ConfigurationError(RudderError): ...


class InvalidEndpointError(ConfigurationError):
    """The endpoint string could not be parsed or uses an unsupported scheme."""


class MissingOutputStreamError(ConfigurationError):
    """A build was requested without an output stream."""


class MissingContextError(ConfigurationError):
    """A build was requested with neither an input stream nor a context directory."""


class MultipleContextsError(ConfigurationError):
    """A build was requested with both an input stream and a context directory."""


# ---------------------------------------------------------------------------
# Transport and protocol errors
# ---------------------------------------------------------------------------


class EngineConnectionRefusedError(RudderError):
    """The engine refused the connection.

    Always retryable: the daemon may simply not be up yet.  rudder never
    retries on its own; the flag is a hint for the caller's policy.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


# Older name; shadows the builtin when star-imported.
ConnectionRefusedError = EngineConnectionRefusedError


class APIError(RudderError):
    """The engine answered with a status code outside ``[200, 400)``."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"API error ({status}): {message}", status_code=status)
        self.status = status
        self.message = message


class RemoteBuildError(RudderError):
    """The engine reported a build failure inside the progress stream."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DecodeError(RudderError):
    """The response body did not match its declared framing."""
