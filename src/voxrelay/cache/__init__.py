"""Audio and identifier caches for voxrelay."""

import os
from pathlib import Path

from .fingerprint import normalize_text, text_fingerprint
from .index import IdentifierIndex
from .models import IndexEntry
from .storage import ArtifactReader, ArtifactWriter, AudioCache

__all__ = [
    "ArtifactReader",
    "ArtifactWriter",
    "AudioCache",
    "IdentifierIndex",
    "IndexEntry",
    "get_cache_dir",
    "normalize_text",
    "text_fingerprint",
]


def get_cache_dir() -> Path:
    """Get the default voxrelay cache directory.

    Honors $XDG_CACHE_HOME, falling back to ~/.cache/voxrelay/. The directory
    is not created here; AudioCache creates its backing directory on first
    store.

    Returns:
        Path to the cache directory
    """
    cache_home = os.environ.get("XDG_CACHE_HOME")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    return base / "voxrelay"
