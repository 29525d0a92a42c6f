"""Request dispatch strategies: pooled TCP/TLS and one-shot Unix socket."""

from rudder.transport.base import Transport
from rudder.transport.http import HttpTransport
from rudder.transport.tls import build_ssl_context
from rudder.transport.unix import UnixSocketTransport

__all__ = [
    "HttpTransport",
    "Transport",
    "UnixSocketTransport",
    "build_ssl_context",
]
