"""Custom exceptions for the OCI registry client."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RegistryErrorDetail


class RegistryError(Exception):
    """Base exception for all registry-related errors."""

    pass


class ValidationError(RegistryError, ValueError):
    """Raised when a repository name, tag, digest or reference is malformed."""

    pass


class RegistryConnectionError(RegistryError):
    """Raised when unable to connect to the registry."""

    pass


class ChallengeParseError(RegistryError):
    """Raised when an authentication challenge does not match the expected grammar."""

    def __init__(self, message: str, remaining: str) -> None:
        super().__init__(f"{message}: {remaining!r}")
        self.remaining = remaining


class AuthenticationError(RegistryError):
    """Raised when the registry cannot be authenticated against."""

    pass


class DecodingError(RegistryError):
    """Raised when a response body cannot be decoded."""

    pass


class ManifestMediaTypeError(DecodingError):
    """Raised when a manifest request returns some other kind of object."""

    def __init__(self, expected: list[str], actual: str | None) -> None:
        super().__init__(
            f"Expected one of {', '.join(expected)} "
            f"but registry sent {actual or 'no content type'}"
        )
        self.expected = expected
        self.actual = actual


class UnexpectedStatusError(RegistryError):
    """Raised when the registry answers with a status the operation did not expect."""

    def __init__(
        self,
        status: int,
        url: str,
        body: bytes = b"",
        errors: list[RegistryErrorDetail] | None = None,
    ) -> None:
        self.status = status
        self.url = url
        self.body = body
        self.errors = errors or []
        if self.errors:
            detail = "; ".join(str(error) for error in self.errors)
        else:
            detail = body.decode("utf-8", errors="replace")[:200]
        super().__init__(f"Unexpected status {status} from {url}: {detail}")


class DigestMismatchError(RegistryError):
    """Raised when a locally computed digest disagrees with the registry."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Digest mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class MissingHeaderError(RegistryError):
    """Raised when a required response header is absent."""

    def __init__(self, header: str) -> None:
        super().__init__(f"Registry response is missing the {header} header")
        self.header = header


class NoMatchingPlatformError(RegistryError):
    """Raised when an image index has no manifest for the requested architecture."""

    def __init__(self, architecture: str) -> None:
        super().__init__(f"Could not find a suitable base image for {architecture}")
        self.architecture = architecture
