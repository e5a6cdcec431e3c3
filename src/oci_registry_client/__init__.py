"""OCI Registry Client - Async Python client for the OCI Distribution API."""

__version__ = "0.1.0"

from .core.auth import (
    AuthHandler,
    AuthorizationProvider,
    DockerConfigAuthorizationProvider,
    NetrcAuthorizationProvider,
)
from .core.challenge import BearerChallenge, parse_challenge
from .core.registry_client import RegistryClient
from .exceptions import (
    AuthenticationError,
    ChallengeParseError,
    DecodingError,
    DigestMismatchError,
    ManifestMediaTypeError,
    MissingHeaderError,
    NoMatchingPlatformError,
    RegistryConnectionError,
    RegistryError,
    UnexpectedStatusError,
    ValidationError,
)
from .models import (
    ContentDescriptor,
    ImageConfiguration,
    ImageConfigurationConfig,
    ImageConfigurationHistory,
    ImageConfigurationRootfs,
    ImageIndex,
    ImageManifest,
    Platform,
    Tags,
)
from .reference import Digest, ImageReference, Repository, Tag
from .registry import (
    blob_exists,
    check_registry_connectivity,
    get_image_manifest,
    list_tags,
)
from .utils.digest import calculate_digest

__all__ = [
    "RegistryClient",
    "AuthHandler",
    "AuthorizationProvider",
    "DockerConfigAuthorizationProvider",
    "NetrcAuthorizationProvider",
    "BearerChallenge",
    "parse_challenge",
    "calculate_digest",
    "ImageReference",
    "Repository",
    "Tag",
    "Digest",
    "ContentDescriptor",
    "Platform",
    "ImageManifest",
    "ImageIndex",
    "ImageConfiguration",
    "ImageConfigurationConfig",
    "ImageConfigurationHistory",
    "ImageConfigurationRootfs",
    "Tags",
    "blob_exists",
    "check_registry_connectivity",
    "get_image_manifest",
    "list_tags",
    "RegistryError",
    "ValidationError",
    "RegistryConnectionError",
    "ChallengeParseError",
    "AuthenticationError",
    "DecodingError",
    "ManifestMediaTypeError",
    "UnexpectedStatusError",
    "DigestMismatchError",
    "MissingHeaderError",
    "NoMatchingPlatformError",
]
