"""Tail eviction for the priority index.

Eviction is purely "drop from the tail until it fits": the index order
already encodes which entry goes first (lowest priority, then oldest).
Victims are only selected here; deleting their blobs is left to the caller
so that it can commit the new index first.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Tuple

from .index import CacheIndex, CacheItem

logger = logging.getLogger(__name__)


@dataclass
class EvictionResult:
    """Outcome of one eviction pass.

    Attributes:
        victims: Removed (fingerprint, item) pairs, in eviction order
        bytes_freed: Total size of the victims
        duration_ms: Time spent selecting victims
    """
    victims: List[Tuple[str, CacheItem]] = field(default_factory=list)
    bytes_freed: int = 0
    duration_ms: float = 0.0

    @property
    def count(self) -> int:
        """Number of evicted entries."""
        return len(self.victims)

    def __bool__(self) -> bool:
        return bool(self.victims)


def evict_to_fit(index: CacheIndex) -> EvictionResult:
    """Remove tail entries until the index fits its maximum size.

    May remove zero, one, or many entries.

    Args:
        index: Index to shrink in place

    Returns:
        EvictionResult listing the removed entries
    """
    start = time.perf_counter()
    result = EvictionResult()

    while index.total_size > index.max_total_size:
        key, item = index.pop_tail()
        result.victims.append((key, item))
        result.bytes_freed += item.size
        logger.debug(f"Selected {key[:12]} for eviction (priority={item.priority}, size={item.size})")

    result.duration_ms = (time.perf_counter() - start) * 1000
    return result
