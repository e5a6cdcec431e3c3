"""Image-level operations composed from blob and manifest calls."""

from __future__ import annotations

import gzip
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .. import media_types
from ..exceptions import ManifestMediaTypeError, NoMatchingPlatformError
from ..models import ContentDescriptor, ImageConfiguration, ImageManifest
from ..reference import Digest, ImageReference

if TYPE_CHECKING:
    from ..core.registry_client import RegistryClient

logger = logging.getLogger(__name__)


def gzip_compress(data: bytes) -> bytes:
    """Compress a layer tarball; a fixed mtime keeps the output reproducible."""
    return gzip.compress(data, mtime=0)


async def get_image_manifest(
    client: RegistryClient, image: ImageReference, architecture: str
) -> tuple[ImageManifest, ContentDescriptor]:
    """Resolve an image to the manifest for one architecture.

    A single-architecture image starts with a manifest, a multi-architecture
    image with an index pointing to one manifest per platform. The manifest
    is requested first; only if the registry sends something else is the
    reference fetched again as an index, and the first entry whose platform
    matches architecture is followed. An entry pointing at another index is
    not followed; the resulting error is raised to the caller.

    Args:
        client: Registry client
        image: Image to resolve
        architecture: Architecture name, e.g. "amd64" or "arm64"

    Returns:
        The manifest and its descriptor

    Raises:
        NoMatchingPlatformError: If the index has no entry for architecture
        ManifestMediaTypeError: If the selected entry is not a manifest
    """
    try:
        return await client.get_manifest(image.repository, image.reference)
    except ManifestMediaTypeError as e:
        logger.debug("%s is not a manifest (%s), trying index", image, e.actual)

    index = await client.get_index(image.repository, image.reference)
    entry = index.find_manifest(architecture)
    if entry is None:
        raise NoMatchingPlatformError(architecture)

    return await client.get_manifest(image.repository, Digest(entry.digest))


async def upload_layer(
    client: RegistryClient,
    repository: str,
    contents: bytes,
    media_type: str = media_types.OCI_LAYER_GZIP,
    compress: Callable[[bytes], bytes] = gzip_compress,
) -> tuple[ContentDescriptor, Digest]:
    """Compress and upload a layer tarball.

    Args:
        client: Registry client
        repository: Destination repository
        contents: Uncompressed tar bytes
        media_type: Layer media type for the descriptor
        compress: Compression applied before upload

    Returns:
        The descriptor of the compressed blob, for the manifest's layers,
        and the diffID of the uncompressed tarball, for the configuration's
        rootfs.diff_ids
    """
    diff_id = Digest.of(contents)
    blob = compress(contents)
    descriptor = await client.put_blob(repository, blob, media_type=media_type)
    return descriptor, diff_id


async def put_image_configuration(
    client: RegistryClient, image: ImageReference, configuration: ImageConfiguration
) -> ContentDescriptor:
    """Upload an image configuration as a plain blob."""
    return await client.put_blob(
        image.repository, configuration, media_type=media_types.OCI_CONFIG
    )


async def get_image_configuration(
    client: RegistryClient, image: ImageReference, digest: str
) -> ImageConfiguration:
    """Fetch an image configuration blob and decode it."""
    return ImageConfiguration.from_dict(
        await client.get_json_blob(image.repository, digest)
    )
