"""Example: build a one-layer image, push it, then resolve it by architecture."""

import asyncio
import io
import logging
import sys
import tarfile

# Add parent directory to path
sys.path.insert(0, "src")

from oci_registry_client import (
    AuthHandler,
    DockerConfigAuthorizationProvider,
    ImageConfiguration,
    ImageManifest,
    ImageReference,
    RegistryClient,
    RegistryError,
    list_tags,
)
from oci_registry_client.models import ImageConfigurationConfig, ImageConfigurationRootfs

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_layer() -> bytes:
    """Create an uncompressed layer tarball holding a single script."""
    content = b"#!/bin/sh\necho 'Hello from oci-registry-client'\n"
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        info = tarfile.TarInfo("hello.sh")
        info.size = len(content)
        info.mode = 0o755
        tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


async def main(name: str = "localhost:5000/examples/hello:latest"):
    """Push an image to a local registry and read it back."""
    image = ImageReference.parse(name)
    provider = await DockerConfigAuthorizationProvider.from_file()

    async with RegistryClient(
        image.registry, insecure=True, auth=AuthHandler(provider=provider)
    ) as client:
        try:
            await client.check_api_version()
            logger.info("✓ Registry %s is accessible", image.registry)

            layer, diff_id = await client.upload_layer(image.repository, build_layer())
            logger.info("Uploaded layer %s (diffID %s)", layer.digest, diff_id)

            configuration = ImageConfiguration(
                architecture="amd64",
                os="linux",
                rootfs=ImageConfigurationRootfs(diff_ids=[diff_id]),
                config=ImageConfigurationConfig(cmd=["/hello.sh"]),
            )
            config = await client.put_image_configuration(image, configuration)

            manifest = ImageManifest(config=config, layers=[layer])
            descriptor = await client.put_manifest(
                image.repository, manifest, reference=image.reference
            )
            logger.info("Pushed %s as %s", image, descriptor.digest)

            resolved, _ = await client.get_image_manifest(image, "amd64")
            logger.info("Resolved manifest has %d layer(s)", len(resolved.layers))

            tags = await list_tags(
                f"{image.registry}/{image.repository}", insecure=True, auth=client.auth
            )
            logger.info(f"Tags: {tags}")

        except RegistryError as e:
            logger.error(f"Registry error: {e}")


if __name__ == "__main__":
    asyncio.run(main(*sys.argv[1:2]))
