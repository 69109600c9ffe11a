"""Atomic persistence of the cache index.

The index is stored as one JSON document inside the cache directory. Commits
write a fresh temporary file next to it and move it over the old one with
``os.replace``, so the file on disk is always either the previous or the new
fully committed index, even if the process dies mid-write.
"""

import json
import logging
from pathlib import Path
from typing import Union

from .exceptions import IndexCorruptedError
from .index import CacheIndex
from .storage import atomic_write_bytes

logger = logging.getLogger(__name__)

INDEX_FILENAME = "PriorityCacheIndex.json"
INDEX_TEMP_PREFIX = ".PriorityCacheIndex-"


def index_path(directory: Union[str, Path], filename: str = INDEX_FILENAME) -> Path:
    """Location of the index file inside a cache directory."""
    return Path(directory) / filename


def load_index(
    directory: Union[str, Path],
    default_max_total_size: int,
    filename: str = INDEX_FILENAME,
) -> CacheIndex:
    """Load the committed index, or create an empty one.

    Args:
        directory: Cache directory
        default_max_total_size: Maximum size for a brand-new index
        filename: Index filename inside the directory

    Returns:
        The committed index, or a fresh empty index if none exists

    Raises:
        IndexCorruptedError: If an index file exists but cannot be decoded
        OSError: If the index file exists but cannot be read
    """
    path = index_path(directory, filename)
    if not path.is_file():
        logger.debug(f"No index at {path}; starting empty (max={default_max_total_size})")
        return CacheIndex(max_total_size=default_max_total_size)

    raw = path.read_bytes()
    try:
        data = json.loads(raw.decode("utf-8"))
        index = CacheIndex.from_dict(data)
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        raise IndexCorruptedError(
            f"Cannot decode cache index: {e}",
            index_path=path,
            cause=e,
        ) from e

    logger.debug(
        f"Loaded index from {path}: {len(index)} entries, "
        f"{index.total_size}/{index.max_total_size} bytes"
    )
    return index


def commit_index(
    index: CacheIndex,
    directory: Union[str, Path],
    filename: str = INDEX_FILENAME,
) -> Path:
    """Atomically replace the committed index with ``index``.

    Args:
        index: Index to persist
        directory: Cache directory
        filename: Index filename inside the directory

    Returns:
        Path of the committed index file

    Raises:
        OSError: If the temporary file cannot be written or moved into place
    """
    path = index_path(directory, filename)
    payload = json.dumps(index.to_dict(), separators=(",", ":")).encode("utf-8")
    atomic_write_bytes(path, payload, prefix=INDEX_TEMP_PREFIX)
    logger.debug(f"Committed index to {path} ({len(index)} entries)")
    return path
