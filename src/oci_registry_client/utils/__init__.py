"""Utility functions for the OCI registry client."""

from .digest import calculate_digest, validate_digest, verify_digest
from .validator import is_valid_digest, is_valid_repository, is_valid_tag

__all__ = [
    "calculate_digest",
    "validate_digest",
    "verify_digest",
    "is_valid_digest",
    "is_valid_repository",
    "is_valid_tag",
]
