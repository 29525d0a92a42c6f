# RUN: python examples/02_tls_and_auth.py
"""Build from a pre-made tar archive on a TLS-protected remote engine.

Demonstrates: tcp:// endpoints on port 2376 switching to https, client
certificates, registry credentials for private base images, build args,
and structlog request logging.
"""

import asyncio
import io
import sys
import tarfile

from rudder import (
    AuthConfig,
    BuildImageOptions,
    RudderClient,
    configure_logging,
    get_logger,
)

DOCKERFILE = b"""\
FROM registry.example.com/base/python:3.12
ARG VERSION
RUN echo "building $VERSION"
"""


def make_context() -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        info = tarfile.TarInfo("Dockerfile")
        info.size = len(DOCKERFILE)
        tar.addfile(info, io.BytesIO(DOCKERFILE))
    return buf.getvalue()


async def main() -> None:
    configure_logging("DEBUG", json=False)

    client = await RudderClient.connect(
        endpoint="tcp://build-host.example.com:2376",
        tls_cert="certs/cert.pem",
        tls_key="certs/key.pem",
        tls_ca="certs/ca.pem",
        logger=get_logger("rudder", component="example"),
    )
    try:
        await client.build_image(
            BuildImageOptions(
                name="registry.example.com/team/app:1.0",
                pull=True,
                build_args={"VERSION": "1.0"},
                input_stream=make_context(),
                output_stream=sys.stdout.buffer,
                auth=AuthConfig(
                    username="ci",
                    password="s3cret",
                    server_address="registry.example.com",
                ),
            )
        )
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
