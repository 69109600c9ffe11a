"""Disk-backed priority cache.

Items are byte blobs keyed by an identifying string (typically a URL) and
carry an explicit priority. The cache keeps the total size under a maximum by
evicting the lowest-priority items first; among equal priorities the oldest
goes first. There is no time-based expiry.

Every mutating operation runs inside one lock and follows the same order:
write the blob, stage the new index on a copy, select eviction victims,
commit the staged index atomically, adopt it, then delete the victims' blobs.
When a call returns, disk state and the in-memory index agree.

Example:
    >>> cache = PriorityCache(100 * 1024 * 1024, directory=Path("./cache"))
    >>> cache.save(10, data, "https://example.com/data.csv")
    True
    >>> cache.local_path("https://example.com/data.csv")
    PosixPath('cache/1f0b...c2.csv')
"""

import logging
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .admission import can_save as admission_check
from .config import CacheConfig
from .eviction import evict_to_fit
from .fingerprint import blob_filename, fingerprint, path_extension
from .index import CacheIndex, CacheItem, check_unsigned
from .persistence import commit_index, load_index
from .storage import BlobStore
from .utils.disk import available_capacity, clear_directory, default_cache_directory, ensure_directory

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass
class CacheStats:
    """Statistics for a PriorityCache since it was opened.

    Attributes:
        saves: Successful saves
        rejected_saves: Saves refused by the admission check
        evictions: Entries evicted to restore the size limit
        bytes_evicted: Total size of evicted entries
        removals: Entries removed explicitly
        priority_changes: Successful re-prioritizations
        entry_count: Current number of entries
        total_size: Current total size in bytes
        max_total_size: Current maximum total size in bytes
    """
    saves: int = 0
    rejected_saves: int = 0
    evictions: int = 0
    bytes_evicted: int = 0
    removals: int = 0
    priority_changes: int = 0
    entry_count: int = 0
    total_size: int = 0
    max_total_size: int = 0

    @property
    def utilization(self) -> float:
        """Fraction of the maximum size in use."""
        if self.max_total_size == 0:
            return 0.0
        return self.total_size / self.max_total_size

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["utilization"] = self.utilization
        return data


class PriorityCache:
    """Size-bounded blob cache with priority eviction.

    One instance owns its directory; opening a second cache on the same
    directory at the same time is not supported.
    """

    def __init__(
        self,
        default_max_total_size: Optional[int] = None,
        directory: Optional[Union[str, Path]] = None,
        config: Optional[CacheConfig] = None,
    ):
        """Open or create a cache.

        Args:
            default_max_total_size: Maximum total size in bytes if no index
                exists yet (defaults to the config value)
            directory: Cache directory (defaults to the config value, then to
                the per-application default directory)
            config: Cache configuration

        Raises:
            IndexCorruptedError: If the committed index cannot be decoded
            StorageError: If the directory is unusable
        """
        self.config = config or CacheConfig()
        if default_max_total_size is None:
            default_max_total_size = self.config.default_max_total_size
        check_unsigned("default_max_total_size", default_max_total_size)

        if directory is None:
            directory = self.config.directory
        if directory is None:
            self.directory = default_cache_directory(self.config.app_name)
        else:
            self.directory = ensure_directory(Path(directory))

        self._store = BlobStore(self.directory)
        self._lock = threading.RLock()
        self._stats = CacheStats()
        self._index = load_index(
            self.directory,
            default_max_total_size,
            filename=self.config.index_filename,
        )

        with self._lock:
            if self.config.prune_orphans_on_open:
                self._prune_orphans()
            if self.config.persist_on_open:
                commit_index(self._index, self.directory, self.config.index_filename)

        logger.info(
            f"PriorityCache opened at {self.directory}: {len(self._index)} entries, "
            f"{self._index.total_size}/{self._index.max_total_size} bytes"
        )

    # ------------------------------------------------------------------
    # Read-only queries (served from the current index snapshot)
    # ------------------------------------------------------------------

    @property
    def max_total_size(self) -> int:
        """Maximum total size in bytes."""
        return self._index.max_total_size

    @property
    def total_size(self) -> int:
        """Current total size in bytes."""
        return self._index.total_size

    @property
    def index(self) -> CacheIndex:
        """Copy of the current index."""
        return self._index.copy()

    @property
    def index_path(self) -> Path:
        """Location of the committed index file."""
        return self.directory / self.config.index_filename

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def __repr__(self) -> str:
        return f"PriorityCache(directory={str(self.directory)!r}, index={self._index!r})"

    def contains(self, key: str) -> bool:
        """True if an item for ``key`` is cached."""
        return fingerprint(key) in self._index

    def unchecked_local_path(self, key: str) -> Path:
        """Blob path for ``key``; does not check existence."""
        return self._store.path(self._filename(key))

    def local_path(self, key: str) -> Optional[Path]:
        """Blob path for ``key`` if the blob exists as a regular file."""
        path = self.unchecked_local_path(key)
        if not path.is_file():
            return None
        return path

    def read(self, key: str) -> Optional[bytes]:
        """Bytes cached for ``key``, or None on a miss.

        Raises:
            FileNotFoundError: If the index lists the key but its blob is gone
        """
        with self._lock:
            if not self.contains(key):
                return None
            return self._store.read(self._filename(key))

    # ------------------------------------------------------------------
    # Admission and mutation
    # ------------------------------------------------------------------

    def can_save(self, priority: int, size: int, key: str) -> bool:
        """Predict whether ``save`` would succeed, without side effects.

        Args:
            priority: Candidate priority
            size: Candidate size in bytes
            key: Identifying key

        Returns:
            True if an item of this size and priority would be cached
        """
        check_unsigned("priority", priority)
        check_unsigned("size", size)
        with self._lock:
            return self._can_save_locked(priority, size, fingerprint(key))

    def save(self, priority: int, data: BytesLike, key: str) -> bool:
        """Cache ``data`` under ``key``, evicting lower-priority items as needed.

        Any existing item with the same key is replaced.

        Args:
            priority: Priority of the item (higher survives longer)
            data: Blob content
            key: Identifying key

        Returns:
            True if the item was cached, False if it cannot fit

        Raises:
            OSError: If writing the blob or committing the index fails
        """
        check_unsigned("priority", priority)
        if not isinstance(data, bytes):
            data = bytes(data)
        size = len(data)

        with self._lock:
            key_fingerprint = fingerprint(key)
            if not self._can_save_locked(priority, size, key_fingerprint):
                self._stats.rejected_saves += 1
                return False

            extension = path_extension(key)
            self._store.write(blob_filename(key_fingerprint, extension), data)

            staged = self._index.copy()
            staged.insert(key_fingerprint, CacheItem(priority, size, extension))
            self._finalize(staged, operation="save")

            self._stats.saves += 1
            logger.debug(f"Saved {key_fingerprint[:12]} (priority={priority}, size={size})")
            return True

    def change_priority(self, priority: int, key: str) -> bool:
        """Move a cached item to a new priority.

        Args:
            priority: New priority
            key: Identifying key

        Returns:
            True if the item is cached and its priority changed
        """
        check_unsigned("priority", priority)
        with self._lock:
            key_fingerprint = fingerprint(key)
            item = self._index.get(key_fingerprint)
            if item is None or item.priority == priority:
                return False

            staged = self._index.copy()
            staged.insert(key_fingerprint, CacheItem(priority, item.size, item.path_extension))
            self._finalize(staged, operation="change_priority")

            self._stats.priority_changes += 1
            logger.debug(
                f"Changed priority of {key_fingerprint[:12]} from {item.priority} to {priority}"
            )
            return True

    def remove(self, key: str) -> None:
        """Remove the item for ``key`` and its blob, if present.

        The index is committed only if it actually held the key.
        """
        with self._lock:
            key_fingerprint = fingerprint(key)
            if key_fingerprint in self._index:
                staged = self._index.copy()
                staged.remove(key_fingerprint)
                self._commit(staged, operation="remove")
                self._stats.removals += 1
                logger.debug(f"Removed {key_fingerprint[:12]}")
            self._store.delete(self._filename(key), missing_ok=True)

    def set_max_total_size(self, max_total_size: int) -> None:
        """Change the maximum total size, evicting items if necessary.

        The new maximum persists across restarts and ``clear``.
        """
        check_unsigned("max_total_size", max_total_size)
        with self._lock:
            staged = self._index.copy()
            staged.max_total_size = max_total_size
            self._finalize(staged, operation="set_max_total_size")
            logger.info(f"Maximum total size set to {max_total_size} bytes")

    def clear(self) -> None:
        """Delete every file in the cache directory and reset the index.

        The empty index is committed before any file is deleted, so a failed
        commit leaves the cache as it was. The maximum total size is retained.
        """
        with self._lock:
            ensure_directory(self.directory)
            self._commit(CacheIndex(max_total_size=self._index.max_total_size), operation="clear")
            removed = clear_directory(self.directory, keep=[self.config.index_filename])
            logger.info(f"Cleared cache at {self.directory} ({removed} files removed)")

    def get_or_fetch(
        self,
        key: str,
        priority: int,
        fetch_fn: Callable[[], BytesLike],
        expected_size: Optional[int] = None,
    ) -> Optional[bytes]:
        """Return cached bytes for ``key`` or fetch and cache them.

        Args:
            key: Identifying key
            priority: Priority to cache fetched bytes with
            fetch_fn: Produces the bytes on a miss (no arguments)
            expected_size: Known size of the fetched bytes; if given, the
                admission check runs first and a rejected item is not fetched

        Returns:
            The bytes, or None if ``expected_size`` was rejected
        """
        cached = self.read(key)
        if cached is not None:
            return cached

        if expected_size is not None and not self.can_save(priority, expected_size, key):
            logger.debug(f"Skipping fetch of {fingerprint(key)[:12]}: would not be admitted")
            return None

        data = bytes(fetch_fn())
        self.save(priority, data, key)
        return data

    def get_stats(self) -> CacheStats:
        """Get cache statistics.

        Returns:
            CacheStats with current metrics
        """
        with self._lock:
            self._stats.entry_count = len(self._index)
            self._stats.total_size = self._index.total_size
            self._stats.max_total_size = self._index.max_total_size
            return CacheStats(**asdict(self._stats))

    def close(self) -> None:
        """Release the cache. All state is already committed."""
        logger.debug(f"PriorityCache at {self.directory} closed")

    def __enter__(self) -> "PriorityCache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers (call with the lock held)
    # ------------------------------------------------------------------

    def _filename(self, key: str) -> str:
        return blob_filename(fingerprint(key), path_extension(key))

    def _capacity(self) -> Optional[int]:
        if not self.config.gate_on_disk_capacity:
            return None
        return available_capacity(self.directory)

    def _can_save_locked(self, priority: int, size: int, key_fingerprint: str) -> bool:
        return admission_check(
            self._index,
            priority,
            size,
            key_fingerprint,
            capacity=self._capacity(),
        )

    def _commit(self, staged: CacheIndex, operation: str) -> None:
        """Commit ``staged`` and adopt it as the live index."""
        try:
            commit_index(staged, self.directory, self.config.index_filename)
        except OSError as e:
            logger.error(f"Failed to commit index during {operation}: {e}")
            raise
        self._index = staged

    def _finalize(self, staged: CacheIndex, operation: str) -> None:
        """Evict from ``staged`` until it fits, commit it, delete victims."""
        result = evict_to_fit(staged)
        self._commit(staged, operation)

        for key, item in result.victims:
            if not self._store.delete(blob_filename(key, item.path_extension), missing_ok=True):
                logger.warning(f"Blob for evicted entry {key[:12]} was already missing")

        if result:
            self._stats.evictions += result.count
            self._stats.bytes_evicted += result.bytes_freed
            logger.info(
                f"Evicted {result.count} item(s) during {operation}, "
                f"freed {result.bytes_freed} bytes in {result.duration_ms:.1f} ms"
            )

    def _prune_orphans(self) -> int:
        """Delete files the index does not reference. Returns count removed."""
        referenced = {
            blob_filename(key, item.path_extension) for key, item in self._index.items()
        }
        referenced.add(self.config.index_filename)

        removed = 0
        for name in sorted(self._store.list() - referenced):
            self._store.delete(name, missing_ok=True)
            removed += 1
        if removed:
            logger.info(f"Pruned {removed} orphaned file(s) from {self.directory}")
        return removed
