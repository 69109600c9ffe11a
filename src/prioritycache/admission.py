"""Admission check: can an item be cached without writing anything?

The check predicts the outcome of ``PriorityCache.save`` exactly. After a
save, the new item sits ahead of every entry whose priority is less than or
equal to its own, so only strictly higher-priority entries can outlast it.
Their summed size plus the candidate's must fit under the maximum; everything
else would be evicted first.
"""

import logging
from typing import Optional

from .index import CacheIndex

logger = logging.getLogger(__name__)


def can_save(
    index: CacheIndex,
    priority: int,
    size: int,
    key: str,
    capacity: Optional[int] = None,
) -> bool:
    """Decide whether an item would survive insertion.

    Pure function: neither the index nor the disk is touched.

    Args:
        index: Current cache index
        priority: Candidate priority
        size: Candidate size in bytes
        key: Candidate fingerprint; a same-key entry is replaced, not kept
        capacity: Free disk bytes, or None when unknown

    Returns:
        True if saving the item would succeed
    """
    limit = index.max_total_size
    if size > limit:
        logger.debug(f"Rejecting {key[:12]}: size {size} exceeds maximum {limit}")
        return False
    if capacity and size > capacity:
        logger.debug(f"Rejecting {key[:12]}: size {size} exceeds free disk space {capacity}")
        return False

    competing = 0
    for existing_key, item in index.items():
        # sorted by non-increasing priority, so nothing further can compete
        if item.priority <= priority:
            break
        if existing_key == key:
            continue
        competing += item.size
        if competing + size > limit:
            logger.debug(
                f"Rejecting {key[:12]}: {competing} bytes at higher priority "
                f"leave no room for {size}"
            )
            return False

    return competing + size <= limit
