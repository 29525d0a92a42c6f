"""rudder: build images on a remote container engine and stream the progress back."""

from rudder.__version__ import __version__

from rudder.core.archive import create_tar_stream
from rudder.core.auth import headers_with_auth
from rudder.core.client import RudderClient
from rudder.core.config import ClientConfig
from rudder.core.constants import Scheme, StreamChannel
from rudder.core.endpoint import Endpoint, resolve_endpoint
from rudder.core.exceptions import (
    APIError,
    ConfigurationError,
    ConnectionRefusedError,
    DecodeError,
    EngineConnectionRefusedError,
    InvalidEndpointError,
    MissingContextError,
    MissingOutputStreamError,
    MultipleContextsError,
    RemoteBuildError,
    RudderError,
)
from rudder.core.query import BUILD_IMAGE_PARAMS, QueryParam, encode_query
from rudder.core.types import (
    AuthConfig,
    AuthConfigSet,
    BuildImageOptions,
    ProgressEvent,
    RegistryAuth,
)
from rudder.stream import StreamFrame, decode_response
from rudder.transport import HttpTransport, Transport, UnixSocketTransport, build_ssl_context
from rudder.utils.logging import configure_logging, get_logger, null_logger

__all__ = [
    "__version__",
    # client
    "RudderClient",
    "ClientConfig",
    # endpoint
    "Endpoint",
    "Scheme",
    "resolve_endpoint",
    # models
    "AuthConfig",
    "AuthConfigSet",
    "BuildImageOptions",
    "ProgressEvent",
    "RegistryAuth",
    "StreamChannel",
    "StreamFrame",
    # encoders
    "BUILD_IMAGE_PARAMS",
    "QueryParam",
    "create_tar_stream",
    "encode_query",
    "headers_with_auth",
    # transport & decoding
    "HttpTransport",
    "Transport",
    "UnixSocketTransport",
    "build_ssl_context",
    "decode_response",
    # logging
    "configure_logging",
    "get_logger",
    "null_logger",
    # exceptions
    "APIError",
    "ConfigurationError",
    "ConnectionRefusedError",
    "DecodeError",
    "EngineConnectionRefusedError",
    "InvalidEndpointError",
    "MissingContextError",
    "MissingOutputStreamError",
    "MultipleContextsError",
    "RemoteBuildError",
    "RudderError",
]
