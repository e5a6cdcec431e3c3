"""Image-level registry operations."""
