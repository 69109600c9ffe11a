"""Priority-ordered index of cached items.

The index is the only in-memory record of what the cache holds. Entries are
kept in eviction order: highest priority at the head, lowest at the tail.
Within one priority the most recently inserted (or re-prioritized) entry is
nearest the head, so the tail always holds the next item to evict.

Invariants maintained by every method:
    - priorities are non-increasing from head to tail
    - equal priorities are ordered newest first
    - ``total_size`` equals the sum of entry sizes
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .fingerprint import is_fingerprint, is_safe_extension

MAX_UNSIGNED = 2 ** 64 - 1


def check_unsigned(name: str, value: Any) -> int:
    """Validate an unsigned integer argument.

    Raises:
        ValueError: If value is not an int in the uint64 range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > MAX_UNSIGNED:
        raise ValueError(f"{name} must fit in 64 bits, got {value}")
    return value


@dataclass(frozen=True)
class CacheItem:
    """Metadata of one cached blob.

    Attributes:
        priority: Caller-assigned rank (higher survives longer)
        size: Blob size in bytes
        path_extension: Filename extension without the dot, or ""
    """
    priority: int
    size: int
    path_extension: str = ""


class CacheIndex:
    """Ordered mapping of fingerprint to CacheItem plus the size limit.

    Example:
        >>> index = CacheIndex(max_total_size=100)
        >>> index.insert("a", CacheItem(priority=1, size=10))
        0
        >>> index.insert("b", CacheItem(priority=5, size=10))
        0
        >>> index.keys()
        ['b', 'a']
    """

    def __init__(
        self,
        max_total_size: int,
        entries: Optional[List[Tuple[str, CacheItem]]] = None,
    ):
        """Initialize the index.

        Args:
            max_total_size: Upper bound for the summed size of all entries
            entries: Entries already in eviction order (head first)
        """
        self.max_total_size = check_unsigned("max_total_size", max_total_size)
        self._entries: "OrderedDict[str, CacheItem]" = OrderedDict()
        self._total_size = 0
        for key, item in entries or []:
            if key in self._entries:
                raise ValueError(f"Duplicate key in index: {key}")
            self._entries[key] = item
            self._total_size += item.size

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def total_size(self) -> int:
        """Summed size of all entries in bytes."""
        return self._total_size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CacheIndex):
            return NotImplemented
        return (
            self.max_total_size == other.max_total_size
            and list(self._entries.items()) == list(other._entries.items())
        )

    def __repr__(self) -> str:
        return (
            f"CacheIndex(max_total_size={self.max_total_size}, "
            f"total_size={self._total_size}, entries={len(self._entries)})"
        )

    def get(self, key: str) -> Optional[CacheItem]:
        """Item for a fingerprint, or None."""
        return self._entries.get(key)

    def keys(self) -> List[str]:
        """Fingerprints in eviction order (head first)."""
        return list(self._entries.keys())

    def items(self) -> List[Tuple[str, CacheItem]]:
        """(fingerprint, item) pairs in eviction order (head first)."""
        return list(self._entries.items())

    def priorities(self) -> List[int]:
        """Priorities in eviction order (head first)."""
        return [item.priority for item in self._entries.values()]

    def tail(self) -> Optional[Tuple[str, CacheItem]]:
        """The next entry to be evicted, or None if empty."""
        if not self._entries:
            return None
        key = next(reversed(self._entries))
        return key, self._entries[key]

    def copy(self) -> "CacheIndex":
        """Independent copy; items are immutable so they are shared."""
        return CacheIndex(self.max_total_size, list(self._entries.items()))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(self, key: str, item: CacheItem) -> int:
        """Insert an item, replacing any entry with the same key.

        The new entry goes immediately before the first existing entry whose
        priority is less than or equal to its own. Equal-priority entries
        therefore accumulate newest first and leave from the tail oldest
        first.

        Args:
            key: Fingerprint
            item: Item to insert

        Returns:
            Position of the new entry (0 = head)
        """
        self.remove(key)

        self._entries[key] = item
        self._total_size += item.size

        # Entries with priority <= item.priority form a contiguous suffix;
        # rotating them behind the new key places it at the suffix start.
        trailing = [
            k for k, existing in self._entries.items()
            if k != key and existing.priority <= item.priority
        ]
        for k in trailing:
            self._entries.move_to_end(k)

        return len(self._entries) - 1 - len(trailing)

    def remove(self, key: str) -> Optional[CacheItem]:
        """Remove an entry.

        Returns:
            The removed item, or None if the key was absent
        """
        item = self._entries.pop(key, None)
        if item is not None:
            self._total_size -= item.size
        return item

    def pop_tail(self) -> Tuple[str, CacheItem]:
        """Remove and return the lowest-priority, oldest entry.

        Raises:
            KeyError: If the index is empty
        """
        if not self._entries:
            raise KeyError("pop_tail from an empty index")
        key, item = self._entries.popitem(last=True)
        self._total_size -= item.size
        return key, item

    def clear(self) -> None:
        """Drop all entries, keeping max_total_size."""
        self._entries.clear()
        self._total_size = 0

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check the ordering and size invariants.

        Raises:
            ValueError: Describing the first violated invariant
        """
        previous: Optional[int] = None
        for key, item in self._entries.items():
            if previous is not None and item.priority > previous:
                raise ValueError(
                    f"Entry {key} has priority {item.priority} after priority {previous}"
                )
            previous = item.priority
        if self._total_size > self.max_total_size:
            raise ValueError(
                f"Total size {self._total_size} exceeds maximum {self.max_total_size}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON document structure."""
        return {
            "maxTotalSize": self.max_total_size,
            "items": [
                {
                    "key": key,
                    "priority": item.priority,
                    "size": item.size,
                    "pathExtension": item.path_extension,
                }
                for key, item in self._entries.items()
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheIndex":
        """Create from the persisted JSON document structure.

        Raises:
            ValueError: If the document is malformed or violates an invariant
        """
        if not isinstance(data, dict):
            raise ValueError("Index document must be an object")
        if "maxTotalSize" not in data or "items" not in data:
            raise ValueError("Index document requires 'maxTotalSize' and 'items'")
        raw_items = data["items"]
        if not isinstance(raw_items, list):
            raise ValueError("'items' must be an array")

        entries: List[Tuple[str, CacheItem]] = []
        for position, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                raise ValueError(f"Item {position} must be an object")
            try:
                key = raw["key"]
                extension = raw.get("pathExtension", "")
                item = CacheItem(
                    priority=check_unsigned("priority", raw["priority"]),
                    size=check_unsigned("size", raw["size"]),
                    path_extension=extension,
                )
            except KeyError as e:
                raise ValueError(f"Item {position} is missing field {e}") from e
            if not is_fingerprint(key):
                raise ValueError(f"Item {position} has an invalid key")
            if not is_safe_extension(extension):
                raise ValueError(f"Item {position} has an invalid pathExtension")
            entries.append((key, item))

        index = cls(check_unsigned("maxTotalSize", data["maxTotalSize"]), entries)
        index.validate()
        return index
