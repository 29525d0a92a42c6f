from __future__ import annotations

import ssl
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog

from rudder.core.endpoint import Endpoint
from rudder.transport.base import Transport


class HttpTransport(Transport):
    """Pooled TCP transport for ``http`` and ``https`` endpoints.

    One :class:`httpx.AsyncClient` is created by :meth:`connect` and shared
    by every request until :meth:`close`; httpx keeps connections alive and
    handles concurrent requests on its own.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        ssl_context: ssl.SSLContext | None = None,
        timeout: float | None = None,
        logger: structlog.typing.FilteringBoundLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create an HttpTransport.

        Args:
            endpoint: A resolved ``http``/``https`` endpoint.
            ssl_context: Client certificate and/or trust root for ``https``.
            timeout: Per-operation timeout in seconds; ``None`` waits forever,
                which long builds need.
            logger: Request log sink; discards everything when omitted.
            transport: Replaces the network transport (tests use
                :class:`httpx.MockTransport`).
        """
        if endpoint.is_unix:
            raise ValueError("HttpTransport needs an http or https endpoint")
        super().__init__(endpoint, timeout=timeout, logger=logger)
        self._ssl_context = ssl_context
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._endpoint.base_url

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Create the shared :class:`httpx.AsyncClient`."""
        if self._client is not None:
            return
        transport = self._transport
        if transport is None and self._ssl_context is not None:
            transport = httpx.AsyncHTTPTransport(verify=self._ssl_context)
        self._client = httpx.AsyncClient(transport=transport, timeout=self._timeout)

    async def close(self) -> None:
        """Close the shared client and its pooled connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is None:
            raise RuntimeError("HttpTransport not connected. Call await transport.connect() first.")
        yield self._client
