from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog

from rudder.core.endpoint import Endpoint
from rudder.transport.base import Transport

# httpx needs an absolute URL; over a Unix socket only the Host header sees it.
_UNIX_BASE_URL = "http://localhost"


class UnixSocketTransport(Transport):
    """Transport for ``unix://`` endpoints.

    Every request dials the socket afresh and the connection is closed as
    soon as the response has been consumed, whichever way the request ends.
    Nothing is pooled, so :meth:`connect` and :meth:`close` hold no state.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        timeout: float | None = None,
        logger: structlog.typing.FilteringBoundLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint.is_unix:
            raise ValueError("UnixSocketTransport needs a unix endpoint")
        super().__init__(endpoint, timeout=timeout, logger=logger)
        self._transport = transport

    @property
    def base_url(self) -> str:
        return _UNIX_BASE_URL

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        transport = self._transport or httpx.AsyncHTTPTransport(uds=self._endpoint.socket_path)
        async with httpx.AsyncClient(transport=transport, timeout=self._timeout) as client:
            yield client
