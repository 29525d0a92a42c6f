# RUN: python examples/01_build_image.py ./my-app myapp:latest
"""Build an image from a local directory and print the engine's progress.

Demonstrates: ClientConfig.from_env(), RudderClient.connect(),
BuildImageOptions with context_dir, and RemoteBuildError handling.

The engine address comes from RUDDER_ENDPOINT (or DOCKER_HOST) and
defaults to the local Unix socket.
"""

import asyncio
import sys

from rudder import BuildImageOptions, ClientConfig, RemoteBuildError, RudderClient


async def main(context_dir: str, tag: str) -> int:
    config = ClientConfig.from_env()
    print(f"Building {tag} from {context_dir} on {config.endpoint}")

    async with await RudderClient.connect(**config.model_dump()) as client:
        try:
            await client.build_image(
                BuildImageOptions(
                    name=tag,
                    context_dir=context_dir,
                    rm_tmp_container=True,
                    output_stream=sys.stdout.buffer,
                )
            )
        except RemoteBuildError as exc:
            print(f"\nBuild failed: {exc.message}", file=sys.stderr)
            return 1

    print(f"\nBuilt {tag}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("usage: 01_build_image.py CONTEXT_DIR TAG", file=sys.stderr)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2])))
