from __future__ import annotations

import ssl
from pathlib import Path

from rudder.core.exceptions import ConfigurationError


def build_ssl_context(
    cert: str | Path | None = None,
    key: str | Path | None = None,
    ca: str | Path | None = None,
) -> ssl.SSLContext | None:
    """Build the TLS context for an ``https`` engine endpoint.

    Args:
        cert: Client certificate (PEM).
        key: Private key for *cert* (PEM).
        ca: CA bundle used as the trust root.  When a client certificate is
            given without a CA the engine's certificate is not verified.

    Returns:
        ``None`` when nothing is configured, so the HTTP client keeps its
        default verification.

    Raises:
        ConfigurationError: If only one of *cert* / *key* is given, or a file
            cannot be loaded.
    """
    if cert is None and key is None and ca is None:
        return None
    if (cert is None) != (key is None):
        raise ConfigurationError(
            "both cert and key path are required",
            details={"cert": str(cert) if cert else None, "key": str(key) if key else None},
        )

    ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    try:
        if cert is not None and key is not None:
            ctx.load_cert_chain(certfile=str(cert), keyfile=str(key))
        if ca is not None:
            ctx.load_verify_locations(cafile=str(ca))
        elif cert is not None:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
    except (OSError, ssl.SSLError) as exc:
        raise ConfigurationError(f"could not load TLS material: {exc}") from exc
    return ctx
