"""Disk space queries and cache directory helpers.

Provides the free-space query used by the admission check, the resolver for
the default per-application cache directory, and directory clearing.
"""
import logging
import os
import re
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..exceptions import StorageError

logger = logging.getLogger(__name__)

CACHEDIR_TAG_NAME = "CACHEDIR.TAG"
CACHEDIR_TAG_CONTENT = (
    "Signature: 8a477f597d28d172789f06886806bc55\n"
    "# This file is a cache directory tag created by prioritycache.\n"
    "# For information about cache directory tags, see:\n"
    "#\thttps://bford.info/cachedir/\n"
)
DEFAULT_SUBDIRECTORY = "priority-cache"


@dataclass
class DiskUsage:
    """Disk usage information."""
    total_bytes: int
    used_bytes: int
    free_bytes: int


def get_disk_usage(path: Path) -> DiskUsage:
    """Get disk usage for the filesystem containing path.

    Args:
        path: Path on the filesystem to check

    Returns:
        DiskUsage object with space information
    """
    usage = shutil.disk_usage(path)
    return DiskUsage(
        total_bytes=usage.total,
        used_bytes=usage.used,
        free_bytes=usage.free,
    )


def available_capacity(path: Path) -> Optional[int]:
    """Query the space available to the cache.

    A failed query or a reported zero both mean "unknown"; callers must not
    gate admission on an unknown capacity.

    Args:
        path: Path on the filesystem to check

    Returns:
        Free bytes, or None if unknown
    """
    try:
        free = get_disk_usage(path).free_bytes
    except OSError as e:
        logger.warning(f"Could not query available capacity for {path}: {e}")
        return None
    if free <= 0:
        return None
    return free


def _user_cache_base() -> Path:
    """Platform cache root for the current user."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        if local:
            return Path(local)
        return Path.home() / "AppData" / "Local"
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg and Path(xdg).is_absolute():
        return Path(xdg)
    return Path.home() / ".cache"


def default_app_name() -> str:
    """Name of the running program, safe for use as a directory name."""
    stem = Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else ""
    name = re.sub(r"[^A-Za-z0-9._-]+", "-", stem).strip(".-")
    return name or "python"


def write_cachedir_tag(directory: Path) -> Path:
    """Mark a directory as a cache so backup tools skip it.

    Args:
        directory: Directory to tag

    Returns:
        Path of the tag file
    """
    tag = directory / CACHEDIR_TAG_NAME
    if not tag.is_file():
        tag.write_text(CACHEDIR_TAG_CONTENT, encoding="ascii")
    return tag


def default_cache_directory(app_name: Optional[str] = None) -> Path:
    """Resolve and create the default cache directory.

    The layout is ``<user cache root>/<app name>/priority-cache``. The
    application directory carries a CACHEDIR.TAG so that backup tools
    honouring the convention exclude it; on macOS the user cache root is
    already excluded from Time Machine. The tag lives one level above the
    blob directory so it is never mistaken for a cached blob.

    Args:
        app_name: Process-specific directory name (defaults to the program name)

    Returns:
        Existing directory for blobs and the index

    Raises:
        StorageError: If the directory cannot be created
    """
    app_dir = _user_cache_base() / (app_name or default_app_name())
    directory = app_dir / DEFAULT_SUBDIRECTORY
    try:
        directory.mkdir(parents=True, exist_ok=True)
        write_cachedir_tag(app_dir)
    except OSError as e:
        raise StorageError(
            "Cannot create default cache directory",
            path=directory,
            operation="mkdir",
            cause=e,
        ) from e
    logger.debug(f"Using default cache directory {directory}")
    return directory


def ensure_directory(directory: Path) -> Path:
    """Create a cache directory if needed and check it is a directory.

    Raises:
        StorageError: If the path exists and is not a directory
    """
    directory = Path(directory)
    if directory.exists() and not directory.is_dir():
        raise StorageError(
            "Cache path is not a directory",
            path=directory,
            operation="open",
        )
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def clear_directory(directory: Path, keep: Iterable[str] = ()) -> int:
    """Delete every entry inside a directory, keeping the directory itself.

    Args:
        directory: Directory to empty
        keep: Names of entries to leave in place

    Returns:
        Number of entries removed
    """
    keep = set(keep)
    removed = 0
    for entry in directory.iterdir():
        if entry.name in keep:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1
    return removed
