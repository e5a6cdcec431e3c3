"""Test helper functions for isolation and test data."""

import io
import os
import tarfile
import time
import uuid

from oci_registry_client import ContentDescriptor, ImageManifest, RegistryClient


def generate_test_id() -> str:
    """Generate unique test identifier."""
    timestamp = int(time.time() * 1000) % 10000  # Last 4 digits of ms timestamp
    uuid_part = str(uuid.uuid4())[:8]
    worker_id = os.getenv("PYTEST_XDIST_WORKER", "main")
    return f"{worker_id}-{timestamp}-{uuid_part}"


def make_repo_name(base_name: str, test_id: str | None = None) -> str:
    """Create isolated repository name."""
    return f"test-{test_id or generate_test_id()}-{base_name}"


def make_layer_tar(files: dict[str, bytes]) -> bytes:
    """Build an uncompressed layer tarball from a mapping of path to contents."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for path, content in files.items():
            info = tarfile.TarInfo(path)
            info.size = len(content)
            info.mtime = 0
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


async def push_minimal_image(
    client: RegistryClient,
    repository: str,
    tag: str | None = "latest",
    config_data: bytes = b"configuration",
    layers: list[bytes] | None = None,
) -> tuple[ImageManifest, ContentDescriptor]:
    """Push a config blob, optional layers and a manifest referring to them."""
    config = await client.put_blob(
        repository,
        config_data,
        media_type="application/vnd.docker.container.image.v1+json",
    )
    layer_descriptors = [
        await client.put_blob(
            repository,
            layer,
            media_type="application/vnd.docker.image.rootfs.diff.tar.gzip",
        )
        for layer in layers or []
    ]
    manifest = ImageManifest(config=config, layers=layer_descriptors)
    descriptor = await client.put_manifest(repository, manifest, reference=tag)
    return manifest, descriptor
