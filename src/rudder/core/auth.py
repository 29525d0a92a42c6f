from __future__ import annotations

from rudder.core.constants import AUTH_CONFIG_HEADER, AUTH_HEADER
from rudder.core.types import AuthConfig, AuthConfigSet, RegistryAuth


def headers_with_auth(*auths: RegistryAuth) -> dict[str, str]:
    """Build the registry auth headers for *auths*.

    An :class:`AuthConfig` goes into ``X-Registry-Auth`` and an
    :class:`AuthConfigSet` into ``X-Registry-Config``.  Empty objects still
    produce a header; the engine ignores them.

    Raises:
        TypeError: If an argument is neither auth shape.
    """
    headers: dict[str, str] = {}
    for auth in auths:
        if isinstance(auth, AuthConfig):
            headers[AUTH_HEADER] = auth.to_header()
        elif isinstance(auth, AuthConfigSet):
            headers[AUTH_CONFIG_HEADER] = auth.to_header()
        else:
            raise TypeError(f"unsupported auth object: {type(auth).__name__}")
    return headers
