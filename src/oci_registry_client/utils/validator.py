"""Name grammar validation for repositories, tags and digests."""

import re

from .digest import validate_digest

# Path components are lowercase alphanumerics separated by single '.', '_' or '-'
REPOSITORY_PATTERN = re.compile(
    r"[a-z0-9]+(?:[._-][a-z0-9]+)*(?:/[a-z0-9]+(?:[._-][a-z0-9]+)*)*"
)
TAG_PATTERN = re.compile(r"[a-zA-Z0-9_][a-zA-Z0-9._-]{0,127}")
REGISTRY_PATTERN = re.compile(r"[a-zA-Z0-9.-]+(?::[0-9]+)?")

MAX_REPOSITORY_LENGTH = 255


def is_valid_repository(name: str) -> bool:
    """Check if name is a valid repository path."""
    if not isinstance(name, str) or not name:
        return False
    if len(name) > MAX_REPOSITORY_LENGTH:
        return False
    return REPOSITORY_PATTERN.fullmatch(name) is not None


def is_valid_tag(tag: str) -> bool:
    """Check if tag is a valid tag name."""
    return isinstance(tag, str) and TAG_PATTERN.fullmatch(tag) is not None


def is_valid_digest(digest: str) -> bool:
    """Check if digest is a valid sha256 content address."""
    return validate_digest(digest)


def is_valid_registry(registry: str) -> bool:
    """Check if registry is a plausible host[:port] string."""
    return isinstance(registry, str) and REGISTRY_PATTERN.fullmatch(registry) is not None


def looks_like_registry(component: str) -> bool:
    """Check if the first component of an image name names a registry host."""
    return "." in component or ":" in component or component == "localhost"
