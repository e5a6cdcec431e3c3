"""Digest calculation and validation utilities."""

import hashlib
import re

from ..exceptions import DigestMismatchError

# Only sha256 content addresses are accepted
DIGEST_ALGORITHM = "sha256"
DIGEST_PATTERN = re.compile(r"sha256:[a-f0-9]{64}")


def calculate_digest(data: bytes | bytearray) -> str:
    """Calculate the content address of data.

    Args:
        data: Exact bytes to hash, with no normalization

    Returns:
        Digest string in format "sha256:<64 lowercase hex characters>"

    Raises:
        ValueError: If data is not bytes-like
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")

    return f"{DIGEST_ALGORITHM}:{hashlib.sha256(data).hexdigest()}"


def validate_digest(digest: str) -> bool:
    """Validate digest format."""
    if not isinstance(digest, str):
        return False

    return DIGEST_PATTERN.fullmatch(digest) is not None


def verify_digest(data: bytes | bytearray, expected_digest: str) -> str:
    """Verify data matches expected digest.

    Args:
        data: Data to verify
        expected_digest: Digest the data is supposed to have

    Returns:
        The verified digest

    Raises:
        DigestMismatchError: If the data hashes to a different digest
    """
    actual_digest = calculate_digest(data)
    if actual_digest != expected_digest:
        raise DigestMismatchError(expected_digest, actual_digest)
    return actual_digest
