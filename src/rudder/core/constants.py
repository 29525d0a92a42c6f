from __future__ import annotations

from enum import IntEnum, StrEnum

from rudder.__version__ import __version__

USER_AGENT = f"rudder/{__version__}"

# Port the engine listens on for its TLS-protected API.
SECURE_API_PORT = 2376

DEFAULT_ENDPOINT = "unix:///var/run/docker.sock"

AUTH_HEADER = "X-Registry-Auth"
AUTH_CONFIG_HEADER = "X-Registry-Config"

JSON_CONTENT_TYPE = "application/json"
TAR_CONTENT_TYPE = "application/tar"
TEXT_CONTENT_TYPE = "text/plain"


class Scheme(StrEnum):
    HTTP = "http"
    HTTPS = "https"
    UNIX = "unix"


class StreamChannel(IntEnum):
    """Channel selector byte of a multiplexed stream frame."""

    STDOUT = 1
    STDERR = 2
