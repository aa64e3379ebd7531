"""Text normalization and fingerprinting."""

import hashlib


def normalize_text(text: str) -> str:
    """Case-fold text and strip surrounding whitespace."""
    return text.strip().lower()


def text_fingerprint(text: str) -> str:
    """Return the MD5 hex digest of the normalized text.

    The digest doubles as the audio cache key and as the short identifier
    embedded in inline-query result URLs, which have a length limit.

    Args:
        text: Raw request text

    Returns:
        32-character lowercase hex string
    """
    return hashlib.md5(normalize_text(text).encode("utf-8")).hexdigest()
