"""
Input validation utilities for swcache.

Validates version tags, request URLs and response sizes before they reach
the cache storage or the network layer.
"""

import re
from urllib.parse import urlsplit

from swcache.core.exceptions import ValidationError

# Version tags end up inside store names, so keep them to a safe alphabet
_VERSION_TAG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")

# Maximum response size (10 MB)
MAX_RESPONSE_SIZE = 10 * 1024 * 1024


def validate_version_tag(tag: str) -> str:
    """Validate a cache version tag.

    Args:
        tag: Version tag such as "v1.0.2".

    Returns:
        The tag, unchanged.

    Raises:
        ValidationError: If the tag is empty or contains characters that
            cannot appear in a store name.
    """
    if not tag:
        raise ValidationError("version", tag or "", "Version tag cannot be empty")

    if len(tag) > 64:
        raise ValidationError("version", tag[:20] + "...", "Version tag exceeds 64 characters")

    if not _VERSION_TAG_PATTERN.match(tag):
        raise ValidationError(
            "version",
            tag,
            "Version tag must start with an alphanumeric character and contain "
            "only alphanumerics, dots, hyphens, plus signs and underscores",
        )

    return tag


def validate_origin(origin: str) -> str:
    """Validate an origin URL and strip any trailing slash.

    Args:
        origin: Origin such as "https://app.example.com".

    Returns:
        Normalized origin without trailing slash.

    Raises:
        ValidationError: If the origin is not an absolute http(s) URL.
    """
    if not origin:
        raise ValidationError("origin", "", "Origin cannot be empty")

    parts = urlsplit(origin)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError("origin", origin, "Origin must be an absolute http(s) URL")

    return origin.rstrip("/")


def validate_response_size(
    content_length: int | None,
    max_size: int = MAX_RESPONSE_SIZE,
) -> None:
    """Validate that a response size is within acceptable limits.

    Args:
        content_length: The body size in bytes (may be None).
        max_size: Maximum allowed response size in bytes.

    Raises:
        ValidationError: If the response is too large.
    """
    if content_length is not None and content_length > max_size:
        size_mb = content_length / (1024 * 1024)
        max_mb = max_size / (1024 * 1024)
        raise ValidationError(
            "response_size",
            f"{size_mb:.1f} MB",
            f"Response exceeds maximum size of {max_mb:.0f} MB",
        )
