"""OCI Distribution (Registry API v2) async client implementation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from typing import Any

import aiohttp
from yarl import URL

from .. import media_types
from ..exceptions import (
    DigestMismatchError,
    ManifestMediaTypeError,
    MissingHeaderError,
    RegistryConnectionError,
)
from ..models import (
    ContentDescriptor,
    ImageConfiguration,
    ImageIndex,
    ImageManifest,
    Tags,
    decode_json,
    encode_json,
)
from ..operations import images
from ..reference import Digest, ImageReference, Repository, parse_reference
from ..utils.digest import calculate_digest, verify_digest
from .auth import AuthHandler
from .session import create_session, execute_request
from .types import (
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    HttpRequest,
    HttpResponse,
    RegistryConfig,
)

logger = logging.getLogger(__name__)


class RegistryClient:
    """OCI Distribution async client for a single registry endpoint.

    Operations on the same client may run concurrently; each upload owns
    its own session URL and blobs are content addressed.
    """

    def __init__(
        self,
        registry: str,
        *,
        insecure: bool = False,
        auth: AuthHandler | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        connector: aiohttp.TCPConnector | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        """Initialize the registry client.

        Args:
            registry: Registry host with optional port (e.g., localhost:5000)
            insecure: Use plain HTTP instead of HTTPS
            auth: Credentials used to answer authentication challenges
            timeout: Request timeout in seconds
            connector: aiohttp connector for connection pooling
            user_agent: User-Agent header sent with every request
        """
        self.config = RegistryConfig(
            registry=registry, insecure=insecure, timeout=timeout, user_agent=user_agent
        )
        self.auth = auth if auth is not None else AuthHandler()
        self.connector = connector
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> RegistryClient:
        """Enter async context manager."""
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the client session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = await create_session(
                timeout=self.config.timeout,
                connector=self.connector,
                user_agent=self.config.user_agent,
            )
        return self.session

    def registry_url(self, path: str) -> URL:
        """Absolute URL of a path on this registry."""
        return self.config.base_url.with_path(path)

    async def _execute(
        self,
        request: HttpRequest,
        expected_status: int | Collection[int] = 200,
        decoding_errors: Collection[int] = (),
    ) -> HttpResponse:
        session = await self._get_session()
        return await execute_request(
            session,
            request,
            auth=self.auth,
            expected_status=expected_status,
            decoding_errors=decoding_errors,
        )

    async def check_api_version(self) -> None:
        """Check that the endpoint speaks the v2 API.

        Raises:
            RegistryConnectionError: If the registry does not answer GET /v2/ with 200
        """
        response = await self._execute(
            HttpRequest("GET", self.registry_url("/v2/")), expected_status=(200, 404)
        )
        if response.status != 200:
            raise RegistryConnectionError(
                f"Registry at {self.config.base_url} does not support v2 API"
            )

    # Blobs

    async def blob_exists(self, repository: str, digest: str) -> bool:
        """Check if a blob exists in the registry.

        Args:
            repository: Repository name
            digest: Blob digest

        Returns:
            True if the registry answers 200, False if it answers 404

        Raises:
            UnexpectedStatusError: For any other status
        """
        repository, digest = Repository(repository), Digest(digest)
        response = await self._execute(
            HttpRequest("HEAD", self.registry_url(f"/v2/{repository}/blobs/{digest}")),
            expected_status=(200, 404),
        )
        return response.status == 200

    async def get_blob(self, repository: str, digest: str) -> bytes:
        """Fetch an unstructured blob.

        Args:
            repository: Repository name
            digest: Blob digest

        Returns:
            Blob data, verified against digest

        Raises:
            UnexpectedStatusError: If the blob does not exist (404) or the fetch fails
            DigestMismatchError: If the data does not hash to digest
        """
        repository, digest = Repository(repository), Digest(digest)
        response = await self._execute(
            HttpRequest(
                "GET",
                self.registry_url(f"/v2/{repository}/blobs/{digest}"),
                headers={"Accept": media_types.OCTET_STREAM},
            ),
            decoding_errors=[404],
        )
        verify_digest(response.body, digest)
        return response.body

    async def get_json_blob(self, repository: str, digest: str) -> Any:
        """Fetch a blob and decode it as JSON, whatever its wire media type."""
        return decode_json(await self.get_blob(repository, digest))

    async def _start_blob_upload(self, repository: Repository) -> URL:
        # Two-shot upload: POST without a digest to open a session. The
        # Location header says where to PUT the data.
        response = await self._execute(
            HttpRequest("POST", self.registry_url(f"/v2/{repository}/blobs/uploads/")),
            expected_status=202,
            decoding_errors=[404],
        )
        location = response.headers.get("Location")
        if not location:
            raise MissingHeaderError("Location")

        upload_url = URL(location)
        if not upload_url.is_absolute():
            upload_url = self.config.base_url.join(upload_url)
        return upload_url

    async def put_blob(
        self,
        repository: str,
        data: bytes | Any,
        media_type: str = media_types.OCTET_STREAM,
    ) -> ContentDescriptor:
        """Upload a blob.

        Args:
            repository: Repository name
            data: Raw bytes (or another buffer), or a model / JSON value
                which is encoded first
            media_type: mediaType of the returned descriptor. On the wire
                every blob is sent as application/octet-stream.

        Returns:
            Descriptor carrying media_type, the local digest and the size

        Raises:
            ValidationError: If data is neither bytes nor JSON serializable
            MissingHeaderError: If the registry does not return an upload location
            DigestMismatchError: If the registry reports a different digest
            UnexpectedStatusError: If either request fails
        """
        repository = Repository(repository)
        if isinstance(data, (bytes, bytearray, memoryview)):
            data = bytes(data)
        else:
            data = encode_json(data)

        upload_url = await self._start_blob_upload(repository)

        # The location may already carry query items, which must be kept
        digest = calculate_digest(data)
        upload_url = upload_url.extend_query(digest=digest)

        response = await self._execute(
            HttpRequest(
                "PUT",
                upload_url,
                headers={"Content-Type": media_types.OCTET_STREAM},
                data=data,
            ),
            expected_status=201,
            decoding_errors=[400, 404],
        )

        server_digest = response.headers.get("Docker-Content-Digest")
        if server_digest is not None and server_digest != digest:
            raise DigestMismatchError(digest, server_digest)

        logger.info("Uploaded blob %s (%d bytes) to %s", digest, len(data), repository)
        return ContentDescriptor(media_type=media_type, digest=digest, size=len(data))

    # Manifests and indexes

    async def _get_document(
        self, repository: str, reference: str, accept: list[str]
    ) -> tuple[Any, ContentDescriptor]:
        repository = Repository(repository)
        reference = parse_reference(reference)
        response = await self._execute(
            HttpRequest(
                "GET",
                self.registry_url(f"/v2/{repository}/manifests/{reference}"),
                headers={"Accept": ", ".join(accept)},
            ),
            decoding_errors=[404],
        )

        document = decode_json(response.body)
        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        if content_type not in accept and content_type in ("", "application/json"):
            content_type = document.get("mediaType", "") if isinstance(document, dict) else ""
        if content_type not in accept:
            raise ManifestMediaTypeError(accept, content_type)

        digest = calculate_digest(response.body)
        if isinstance(reference, Digest) and digest != reference:
            raise DigestMismatchError(reference, digest)

        descriptor = ContentDescriptor(
            media_type=content_type, digest=digest, size=len(response.body)
        )
        return document, descriptor

    async def get_manifest(
        self, repository: str, reference: str
    ) -> tuple[ImageManifest, ContentDescriptor]:
        """Retrieve an image manifest.

        Args:
            repository: Repository name
            reference: Tag or digest reference

        Returns:
            The manifest and a descriptor of its exact bytes

        Raises:
            ManifestMediaTypeError: If the reference names an index or another object
            UnexpectedStatusError: If retrieval fails
        """
        document, descriptor = await self._get_document(
            repository, reference, media_types.MANIFEST_TYPES
        )
        return ImageManifest.from_dict(document), descriptor

    async def get_index(self, repository: str, reference: str) -> ImageIndex:
        """Retrieve an image index.

        Raises:
            ManifestMediaTypeError: If the reference names a manifest or another object
            UnexpectedStatusError: If retrieval fails
        """
        document, _ = await self._get_document(
            repository, reference, media_types.INDEX_TYPES
        )
        return ImageIndex.from_dict(document)

    async def _put_document(
        self,
        repository: str,
        reference: str | None,
        document: ImageManifest | ImageIndex,
        default_media_type: str,
    ) -> ContentDescriptor:
        repository = Repository(repository)
        data = encode_json(document)
        digest = calculate_digest(data)
        media_type = document.media_type or default_media_type
        # Without a tag the document is only addressable by its digest
        target = parse_reference(reference) if reference is not None else Digest(digest)

        response = await self._execute(
            HttpRequest(
                "PUT",
                self.registry_url(f"/v2/{repository}/manifests/{target}"),
                headers={"Content-Type": media_type},
                data=data,
            ),
            expected_status=201,
            decoding_errors=[400, 404],
        )

        server_digest = response.headers.get("Docker-Content-Digest")
        if server_digest is not None and server_digest != digest:
            raise DigestMismatchError(digest, server_digest)

        logger.info("Pushed %s %s to %s:%s", media_type, digest, repository, target)
        return ContentDescriptor(media_type=media_type, digest=digest, size=len(data))

    async def put_manifest(
        self,
        repository: str,
        manifest: ImageManifest,
        reference: str | None = None,
    ) -> ContentDescriptor:
        """Upload a manifest.

        Args:
            repository: Repository name
            manifest: Manifest to upload
            reference: Tag to apply; if omitted the manifest is pushed
                untagged, by its own digest

        Returns:
            Descriptor of the uploaded manifest
        """
        return await self._put_document(
            repository, reference, manifest, media_types.OCI_MANIFEST
        )

    async def put_index(
        self,
        repository: str,
        index: ImageIndex,
        reference: str | None = None,
    ) -> ContentDescriptor:
        """Upload an image index, tagged or untagged like put_manifest."""
        return await self._put_document(repository, reference, index, media_types.OCI_INDEX)

    async def get_tags(self, repository: str) -> Tags:
        """List tags for a repository.

        Registries answer with an error, not an empty list, when the
        repository has no tags or does not exist.

        Raises:
            UnexpectedStatusError: If the repository is unknown
            DecodingError: If the registry reports no tags
        """
        repository = Repository(repository)
        response = await self._execute(
            HttpRequest("GET", self.registry_url(f"/v2/{repository}/tags/list")),
            decoding_errors=[404],
        )
        return Tags.from_dict(decode_json(response.body))

    # Images

    async def get_image_manifest(
        self, image: ImageReference, architecture: str
    ) -> tuple[ImageManifest, ContentDescriptor]:
        """Resolve image to the manifest for architecture. See images.get_image_manifest."""
        return await images.get_image_manifest(self, image, architecture)

    async def upload_layer(
        self,
        repository: str,
        contents: bytes,
        media_type: str = media_types.OCI_LAYER_GZIP,
        compress: Callable[[bytes], bytes] = images.gzip_compress,
    ) -> tuple[ContentDescriptor, Digest]:
        """Compress and upload a layer tarball. See images.upload_layer."""
        return await images.upload_layer(self, repository, contents, media_type, compress)

    async def put_image_configuration(
        self, image: ImageReference, configuration: ImageConfiguration
    ) -> ContentDescriptor:
        """Upload an image configuration as a plain blob."""
        return await images.put_image_configuration(self, image, configuration)

    async def get_image_configuration(
        self, image: ImageReference, digest: str
    ) -> ImageConfiguration:
        """Fetch and decode an image configuration blob."""
        return await images.get_image_configuration(self, image, digest)
