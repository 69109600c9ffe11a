"""prioritycache - disk-backed, size-bounded cache with priority eviction.

Example:
    >>> from prioritycache import PriorityCache
    >>>
    >>> cache = PriorityCache(default_max_total_size=100 * 1024 * 1024)
    >>> if cache.can_save(priority=10, size=len(data), key=url):
    ...     cache.save(priority=10, data=data, key=url)
    >>> path = cache.local_path(url)
"""
__version__ = "1.0.0"

from .admission import can_save
from .cache import CacheStats, PriorityCache
from .config import DEFAULT_MAX_TOTAL_SIZE, CacheConfig, load_config
from .eviction import EvictionResult, evict_to_fit
from .exceptions import (
    ConfigurationError,
    IndexCorruptedError,
    PriorityCacheError,
    StorageError,
)
from .fingerprint import blob_filename, fingerprint, path_extension
from .index import CacheIndex, CacheItem
from .persistence import INDEX_FILENAME, commit_index, load_index
from .storage import BlobStore

__all__ = [
    "__version__",
    # Cache
    "PriorityCache",
    "CacheStats",
    # Configuration
    "CacheConfig",
    "DEFAULT_MAX_TOTAL_SIZE",
    "load_config",
    # Index and engine
    "CacheIndex",
    "CacheItem",
    "can_save",
    "evict_to_fit",
    "EvictionResult",
    "INDEX_FILENAME",
    "load_index",
    "commit_index",
    # Storage and keys
    "BlobStore",
    "fingerprint",
    "path_extension",
    "blob_filename",
    # Exceptions
    "PriorityCacheError",
    "ConfigurationError",
    "IndexCorruptedError",
    "StorageError",
]
