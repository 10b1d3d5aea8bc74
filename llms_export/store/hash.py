"""Content hashing utilities for artifact deduplication."""

import hashlib


# 32 hex characters = 128 bits.
CONTENT_HASH_LENGTH = 32


def compute_content_hash(content: str) -> str:
    """Compute the dedup hash of an artifact's text.

    The hash covers the exact UTF-8 bytes that would be uploaded, so two
    renderings hash equal only if the uploaded artifact would be identical.

    Args:
        content: Artifact text.

    Returns:
        First 32 hex characters (128 bits) of the SHA-256 digest.

    Examples:
        >>> len(compute_content_hash("# Title"))
        32
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:CONTENT_HASH_LENGTH]
