from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog

from rudder.core.archive import create_tar_stream
from rudder.core.auth import headers_with_auth
from rudder.core.config import ClientConfig
from rudder.core.constants import TAR_CONTENT_TYPE
from rudder.core.endpoint import Endpoint, resolve_endpoint
from rudder.core.exceptions import (
    MissingContextError,
    MissingOutputStreamError,
    MultipleContextsError,
)
from rudder.core.query import BUILD_IMAGE_PARAMS, encode_query
from rudder.core.types import BuildImageOptions
from rudder.stream.decoder import decode_response
from rudder.transport.base import Transport
from rudder.utils.logging import get_logger


class RudderClient:
    """Client for a container engine's build API.

    Create via the :meth:`connect` factory method::

        client = await RudderClient.connect(endpoint="unix:///var/run/docker.sock")
        await client.build_image(
            BuildImageOptions(name="app:latest", context_dir="./app", output_stream=sys.stdout.buffer)
        )
        await client.close()

    Or use as an async context manager::

        async with await RudderClient.connect(endpoint="tcp://10.0.0.5:2376", tls_ca="ca.pem") as client:
            ...
    """

    def __init__(self, *, config: ClientConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    # ------------------------------------------------------------------ #
    # Factory
    # ------------------------------------------------------------------ #

    @classmethod
    async def connect(
        cls,
        *,
        logger: structlog.typing.FilteringBoundLogger | None = None,
        **kwargs: Any,
    ) -> RudderClient:
        """Resolve the endpoint, pick a transport and connect it.

        Any :class:`ClientConfig` field can be passed as a keyword argument.

        Args:
            logger: Request log sink for the transport.  Defaults to a no-op
                logger unless ``log_requests=True``.

        Raises:
            InvalidEndpointError: The endpoint string is not usable.
            ConfigurationError: TLS material is incomplete or unreadable.
        """
        config = ClientConfig(**kwargs)
        if logger is None and config.log_requests:
            logger = get_logger("rudder")
        transport = cls._build_transport(config, resolve_endpoint(config.endpoint), logger)
        await transport.connect()
        return cls(config=config, transport=transport)

    @staticmethod
    def _build_transport(
        config: ClientConfig,
        endpoint: Endpoint,
        logger: structlog.typing.FilteringBoundLogger | None,
    ) -> Transport:
        """Select the transport strategy for *endpoint*."""
        if endpoint.is_unix:
            from rudder.transport.unix import UnixSocketTransport  # noqa: PLC0415

            return UnixSocketTransport(endpoint, timeout=config.timeout, logger=logger)

        from rudder.transport.http import HttpTransport  # noqa: PLC0415
        from rudder.transport.tls import build_ssl_context  # noqa: PLC0415

        ssl_context = build_ssl_context(config.tls_cert, config.tls_key, config.tls_ca)
        return HttpTransport(
            endpoint,
            ssl_context=ssl_context,
            timeout=config.timeout,
            logger=logger,
        )

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def endpoint(self) -> Endpoint:
        return self._transport.endpoint

    # ------------------------------------------------------------------ #
    # Streaming primitive
    # ------------------------------------------------------------------ #

    async def stream(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        stdout: Any = None,
        stderr: Any = None,
        raw_json_stream: bool = False,
        raw_terminal: bool = False,
    ) -> None:
        """Send a request and decode its streaming response into sinks.

        Args:
            method: HTTP verb.
            path: Path plus query string.
            headers: Extra request headers.
            body: ``bytes``, a binary file-like object or an async iterable.
            stdout: Binary sink for progress text / the stdout channel.
                ``None`` discards.
            stderr: Binary sink for the stderr channel.  ``None`` discards.
            raw_json_stream: Copy JSON event bodies verbatim.
            raw_terminal: Copy non-JSON bodies verbatim instead of
                demultiplexing them.
        """
        async with self._transport.send(method, path, headers=headers, body=body) as response:
            await decode_response(
                response,
                stdout if stdout is not None else _Discard(),
                stderr,
                raw_json_stream=raw_json_stream,
                raw_terminal=raw_terminal,
            )

    # ------------------------------------------------------------------ #
    # Images
    # ------------------------------------------------------------------ #

    async def build_image(self, options: BuildImageOptions) -> None:
        """Build an image from a tar context or a local directory.

        Progress is written to ``options.output_stream``.  Every option check
        happens before the engine is contacted.

        Raises:
            MissingOutputStreamError: ``output_stream`` is not set.
            MissingContextError: Neither ``input_stream`` nor ``context_dir``.
            MultipleContextsError: Both ``input_stream`` and ``context_dir``.
            RemoteBuildError: The engine reported a build failure.
        """
        if options.output_stream is None:
            raise MissingOutputStreamError("output stream is missing")

        headers = headers_with_auth(options.auth, options.auth_configs)

        has_stream = options.input_stream is not None
        has_dir = bool(options.context_dir)
        if not has_stream and not has_dir:
            raise MissingContextError("context is missing")
        if has_stream and has_dir:
            raise MultipleContextsError("multiple contexts are presented")
        headers["Content-Type"] = TAR_CONTENT_TYPE

        query = encode_query(options, BUILD_IMAGE_PARAMS)
        path = f"/build?{query}" if query else "/build"

        packed = await asyncio.to_thread(create_tar_stream, options.context_dir) if has_dir else None
        try:
            await self.stream(
                "POST",
                path,
                headers=headers,
                body=packed if packed is not None else options.input_stream,
                stdout=options.output_stream,
                raw_json_stream=options.raw_json_stream,
                raw_terminal=True,
            )
        finally:
            if packed is not None:
                packed.close()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def close(self) -> None:
        """Release the transport's connections."""
        await self._transport.close()

    async def __aenter__(self) -> RudderClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


class _Discard:
    def write(self, data: bytes) -> int:
        return len(data)
