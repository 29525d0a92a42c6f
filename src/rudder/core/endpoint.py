from __future__ import annotations

from urllib.parse import urlsplit

from pydantic import BaseModel

from rudder.core.constants import SECURE_API_PORT, Scheme
from rudder.core.exceptions import InvalidEndpointError


class Endpoint(BaseModel):
    """A validated address of the engine's control API.

    ``unix`` endpoints carry the socket path in :attr:`path` and never a port.
    ``http``/``https`` endpoints carry a host and, when one was given, a port
    in ``(0, 65536)``.
    """

    scheme: Scheme
    host: str = ""
    port: int | None = None
    path: str = ""
    raw: str = ""

    model_config = {"frozen": True}

    @property
    def is_unix(self) -> bool:
        return self.scheme == Scheme.UNIX

    @property
    def socket_path(self) -> str:
        """Filesystem path of the Unix socket (``""`` for TCP endpoints)."""
        return self.path if self.is_unix else ""

    @property
    def base_url(self) -> str:
        """URL prefix requests are appended to.

        Empty for Unix sockets, since the socket path is not part of the
        HTTP request line.
        """
        if self.is_unix:
            return ""
        host = f"[{self.host}]" if ":" in self.host else self.host
        netloc = host if self.port is None else f"{host}:{self.port}"
        return f"{self.scheme}://{netloc}{self.path}".rstrip("/")


class _MissingPort(Exception):
    """Raised by :func:`_split_host_port` when the address has no port."""


def _split_host_port(netloc: str) -> tuple[str, str]:
    """Split ``host:port``, accepting bracketed IPv6 hosts.

    Raises:
        _MissingPort: The address carries no port at all.
        ValueError: The address is malformed.
    """
    if netloc.startswith("["):
        end = netloc.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {netloc!r}")
        host, rest = netloc[1:end], netloc[end + 1 :]
        if not rest:
            raise _MissingPort(netloc)
        if not rest.startswith(":"):
            raise ValueError(f"unexpected text after host in {netloc!r}")
        return host, rest[1:]

    colons = netloc.count(":")
    if colons == 0:
        raise _MissingPort(netloc)
    if colons > 1:
        raise ValueError(f"too many colons in address {netloc!r}")
    host, _, port = netloc.partition(":")
    return host, port


def _parse_port(port: str) -> int:
    if not port.isdigit():
        raise ValueError(f"invalid port {port!r}")
    number = int(port)
    if not 0 < number < 65536:
        raise ValueError(f"port {number} out of range")
    return number


def resolve_endpoint(raw: str) -> Endpoint:
    """Parse and validate an engine endpoint string.

    ``tcp://`` endpoints are reinterpreted as ``https`` when they target the
    secure API port (2376) and as ``http`` otherwise.  A missing port on a
    TCP endpoint is tolerated and left unresolved.

    Args:
        raw: Connection string, e.g. ``"unix:///var/run/docker.sock"`` or
            ``"tcp://10.0.0.5:2376"``.

    Returns:
        The resolved :class:`Endpoint`.

    Raises:
        InvalidEndpointError: If *raw* is unparsable, uses an unsupported
            scheme, or carries an invalid host/port.
    """
    try:
        parts = urlsplit(raw)
    except ValueError as exc:
        raise InvalidEndpointError(
            f"endpoint is not valid: {raw!r}", details={"endpoint": raw}
        ) from exc

    scheme = parts.scheme.lower()

    if scheme == Scheme.UNIX:
        socket_path = parts.netloc + parts.path
        if not socket_path:
            raise InvalidEndpointError(
                f"endpoint is not valid: {raw!r} has no socket path",
                details={"endpoint": raw},
            )
        return Endpoint(scheme=Scheme.UNIX, path=socket_path, raw=raw)

    if scheme not in ("tcp", Scheme.HTTP, Scheme.HTTPS):
        raise InvalidEndpointError(
            f"endpoint is not valid: unsupported scheme {parts.scheme!r}",
            details={"endpoint": raw},
        )

    # Userinfo is not part of the address and is dropped.
    hostport = parts.netloc.rpartition("@")[2]
    port: int | None
    try:
        host, port_str = _split_host_port(hostport)
        port = _parse_port(port_str)
    except _MissingPort:
        host, port = hostport.strip("[]"), None
    except ValueError as exc:
        raise InvalidEndpointError(
            f"endpoint is not valid: {exc}", details={"endpoint": raw}
        ) from exc

    if not host:
        raise InvalidEndpointError(
            f"endpoint is not valid: {raw!r} has no host", details={"endpoint": raw}
        )

    if scheme == "tcp":
        scheme = Scheme.HTTPS if port == SECURE_API_PORT else Scheme.HTTP

    return Endpoint(
        scheme=Scheme(scheme),
        host=host,
        port=port,
        path=parts.path,
        raw=raw,
    )
