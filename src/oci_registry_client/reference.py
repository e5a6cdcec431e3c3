"""Image reference model: repositories, tags, digests and full image names."""

from dataclasses import dataclass
from typing import Union

from .exceptions import ValidationError
from .utils.digest import calculate_digest
from .utils.validator import (
    is_valid_digest,
    is_valid_registry,
    is_valid_repository,
    is_valid_tag,
    looks_like_registry,
)

DEFAULT_REGISTRY = "localhost:5000"
DEFAULT_TAG = "latest"
DOCKER_HUB_ALIASES = ("docker.io", "index.docker.io", "registry-1.docker.io")
DOCKER_HUB_REGISTRY = "index.docker.io"


class Repository(str):
    """A validated repository name, e.g. ``library/ubuntu``."""

    def __new__(cls, value: str) -> "Repository":
        if not is_valid_repository(value):
            raise ValidationError(f"Invalid repository name: {value!r}")
        return super().__new__(cls, value)


class Tag(str):
    """A validated tag name, e.g. ``latest``."""

    def __new__(cls, value: str) -> "Tag":
        if not is_valid_tag(value):
            raise ValidationError(f"Invalid tag: {value!r}")
        return super().__new__(cls, value)

    @property
    def separator(self) -> str:
        return ":"


class Digest(str):
    """A validated content digest, e.g. ``sha256:9f86d0...``."""

    def __new__(cls, value: str) -> "Digest":
        if not is_valid_digest(value):
            raise ValidationError(f"Invalid digest: {value!r}")
        return super().__new__(cls, value)

    @classmethod
    def of(cls, data: bytes) -> "Digest":
        """Compute the digest of data."""
        return cls(calculate_digest(data))

    @property
    def separator(self) -> str:
        return "@"


Reference = Union[Tag, Digest]


def parse_reference(reference: str) -> Reference:
    """Interpret reference as a digest if it has an algorithm prefix, else as a tag.

    Raises:
        ValidationError: If reference is neither a valid tag nor a valid digest
    """
    if isinstance(reference, (Tag, Digest)):
        return reference
    if ":" in reference:
        return Digest(reference)
    return Tag(reference)


@dataclass(frozen=True)
class ImageReference:
    """A fully-qualified image name: registry, repository and tag or digest."""

    registry: str
    repository: Repository
    reference: Reference

    def __post_init__(self) -> None:
        if not is_valid_registry(self.registry):
            raise ValidationError(f"Invalid registry: {self.registry!r}")
        # Accept plain strings from callers and validate them here
        object.__setattr__(self, "repository", Repository(self.repository))
        object.__setattr__(self, "reference", parse_reference(self.reference))

    @classmethod
    def parse(
        cls, name: str, default_registry: str = DEFAULT_REGISTRY
    ) -> "ImageReference":
        """Parse ``[registry/]repository[:tag|@digest]``.

        Args:
            name: Image name, e.g. "localhost:5000/myapp:v1" or "ubuntu@sha256:..."
            default_registry: Registry used when name does not start with one

        Returns:
            Parsed image reference. A missing tag defaults to "latest".

        Raises:
            ValidationError: If any component is malformed
        """
        if not name:
            raise ValidationError("Image name must not be empty")

        registry = default_registry
        remainder = name
        first, sep, rest = name.partition("/")
        if sep and looks_like_registry(first):
            registry, remainder = first, rest

        if "@" in remainder:
            path, reference = remainder.split("@", 1)
            parsed_reference: Reference = Digest(reference)
        else:
            # Split only on the last ':' that follows the final '/'
            head, slash, tail = remainder.rpartition("/")
            if ":" in tail:
                tail, tag = tail.rsplit(":", 1)
            else:
                tag = DEFAULT_TAG
            path = f"{head}{slash}{tail}"
            parsed_reference = Tag(tag)

        if registry in DOCKER_HUB_ALIASES:
            registry = DOCKER_HUB_REGISTRY
            if "/" not in path:
                path = f"library/{path}"

        return cls(registry, Repository(path), parsed_reference)

    def __str__(self) -> str:
        return f"{self.registry}/{self.repository}{self.reference.separator}{self.reference}"
