"""Stable on-disk identities for cache keys.

A key is any identifying string, typically a URL. Its fingerprint is the
lowercase hex SHA-256 of the UTF-8 encoded key, so every key maps to a fixed
64-character filename. The extension hint is taken from the last segment of
the key's path (``https://host/img/photo.png`` gives ``png``).
"""

import hashlib
import re
from pathlib import PurePosixPath
from urllib.parse import urlparse

FINGERPRINT_LENGTH = 64

_FINGERPRINT_RE = re.compile(r"[0-9a-f]{64}")
_UNSAFE_EXTENSION_CHARS = ("/", "\\", "\x00")


def fingerprint(key: str) -> str:
    """Compute the fingerprint of a cache key.

    Args:
        key: Identifying key (e.g., a URL)

    Returns:
        64-character lowercase hex digest
    """
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def path_extension(key: str) -> str:
    """Derive a file extension hint from a key.

    Query strings and fragments are ignored. Keys whose last path segment
    has no suffix, only a leading dot (``/.profile``), or a suffix with a
    path separator or NUL, yield an empty string.

    Args:
        key: Identifying key (e.g., a URL)

    Returns:
        Extension without the leading dot, or ``""``
    """
    path = urlparse(key).path
    if not path or path.endswith("/"):
        return ""
    extension = PurePosixPath(path).suffix[1:]
    if not is_safe_extension(extension):
        return ""
    return extension


def is_fingerprint(value: object) -> bool:
    """True if value has the shape of a fingerprint (64 lowercase hex chars)."""
    return isinstance(value, str) and _FINGERPRINT_RE.fullmatch(value) is not None


def is_safe_extension(extension: object) -> bool:
    """True if extension keeps a blob filename inside the cache directory."""
    if not isinstance(extension, str) or extension in (".", ".."):
        return False
    return not any(char in extension for char in _UNSAFE_EXTENSION_CHARS)


def blob_filename(key_fingerprint: str, extension: str = "") -> str:
    """Build the blob filename for a fingerprint and extension."""
    if extension:
        return f"{key_fingerprint}.{extension}"
    return key_fingerprint
