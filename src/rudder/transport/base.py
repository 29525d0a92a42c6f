from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import httpx
import structlog

from rudder.core.constants import TEXT_CONTENT_TYPE, USER_AGENT
from rudder.core.endpoint import Endpoint
from rudder.core.exceptions import APIError, EngineConnectionRefusedError
from rudder.utils.logging import null_logger

_CHUNK_SIZE = 64 * 1024

_WRITE_METHODS = frozenset({"POST", "PUT"})


def _request_headers(method: str, headers: Mapping[str, str] | None) -> dict[str, str]:
    merged = {"User-Agent": USER_AGENT}
    if method in _WRITE_METHODS:
        merged["Content-Type"] = TEXT_CONTENT_TYPE
    if headers:
        merged.update(headers)
    return merged


async def _iter_file(fileobj: Any) -> AsyncIterator[bytes]:
    while True:
        chunk = await asyncio.to_thread(fileobj.read, _CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


def _request_content(method: str, body: Any) -> Any:
    if body is None:
        return b"" if method in _WRITE_METHODS else None
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if hasattr(body, "__aiter__"):
        return body
    if hasattr(body, "read"):
        return _iter_file(body)
    raise TypeError(f"unsupported request body: {type(body).__name__}")


def _is_connection_refused(exc: BaseException) -> bool:
    """True if *exc* or anything in its cause chain is a refused connection."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return True
        if "connection refused" in str(current).lower():
            return True
        current = current.__cause__ or current.__context__
    return False


class Transport(ABC):
    """One way of reaching the engine's HTTP API.

    Subclasses only decide where the ``httpx.AsyncClient`` for a request
    comes from (:meth:`_session`) and what URL prefix requests use.  Header
    defaults, error mapping and status handling live here so both
    strategies behave identically.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        timeout: float | None = None,
        logger: structlog.typing.FilteringBoundLogger | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = httpx.Timeout(timeout)
        self._logger = (logger or null_logger()).bind(endpoint=endpoint.raw)

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    # ------------------------------------------------------------------ #
    # Strategy hooks
    # ------------------------------------------------------------------ #

    @property
    @abstractmethod
    def base_url(self) -> str:
        """Prefix prepended to every request path."""

    @abstractmethod
    def _session(self) -> AbstractAsyncContextManager[httpx.AsyncClient]:
        """Yield the client a single request is sent with."""

    # ------------------------------------------------------------------ #
    # Request dispatch
    # ------------------------------------------------------------------ #

    @asynccontextmanager
    async def send(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> AsyncIterator[httpx.Response]:
        """Send one request and yield the streaming response.

        The response body has not been read when it is yielded; the
        connection is released when the ``async with`` block exits.

        Args:
            method: HTTP verb, e.g. ``"POST"``.
            path: Request path including any query string, e.g.
                ``"/build?t=app"``.
            headers: Extra headers; they override the defaults.
            body: ``bytes``, a binary file-like object or an async iterable
                of bytes.  POST and PUT without a body send an empty one.

        Raises:
            EngineConnectionRefusedError: The engine refused the connection.
            APIError: The status code is outside ``[200, 400)``.
            httpx.TransportError: Any other transport failure, unchanged.
        """
        method = method.upper()
        request_headers = _request_headers(method, headers)
        content = _request_content(method, body)
        url = f"{self.base_url}{path}"
        log = self._logger.bind(method=method, path=path)
        log.debug("request")

        async with self._session() as client:
            request = client.build_request(method, url, headers=request_headers, content=content)
            try:
                response = await client.send(request, stream=True)
            except httpx.ConnectError as exc:
                if _is_connection_refused(exc):
                    log.debug("connection refused")
                    raise EngineConnectionRefusedError(
                        f"connection refused by {self._endpoint.raw}",
                        details={"endpoint": self._endpoint.raw},
                    ) from exc
                raise

            try:
                if not 200 <= response.status_code < 400:
                    raw = await response.aread()
                    log.debug("api error", status=response.status_code)
                    raise APIError(response.status_code, raw.decode("utf-8", errors="replace"))
                log.debug(
                    "response",
                    status=response.status_code,
                    content_type=response.headers.get("content-type", ""),
                )
                yield response
            finally:
                await response.aclose()
