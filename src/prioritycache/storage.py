"""Blob storage primitives for the cache directory.

Blobs live directly inside the cache directory, one file per entry, named
``<fingerprint>`` or ``<fingerprint>.<extension>``. Writes go to a temporary
file in the same directory and are moved into place with ``os.replace``, so a
reader never observes a partially written blob.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Set, Union

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"
BLOB_TEMP_PREFIX = ".blob-"


def atomic_write_bytes(path: Path, data: bytes, prefix: str = BLOB_TEMP_PREFIX) -> None:
    """Write bytes to path atomically.

    The temporary file is created next to the target so the final rename
    never crosses a filesystem boundary.

    Args:
        path: Destination file
        data: Content to write
        prefix: Name prefix for the temporary file

    Raises:
        OSError: If writing or replacing fails; the target is left untouched
    """
    fd, tmp = tempfile.mkstemp(prefix=prefix, suffix=TEMP_SUFFIX, dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.remove(tmp)
        except FileNotFoundError:
            pass
        raise


class BlobStore:
    """File operations on a flat cache directory.

    Example:
        >>> store = BlobStore(Path("./cache"))
        >>> store.write("3f2a...e1.png", b"...")
        >>> data = store.read("3f2a...e1.png")
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path(self, filename: str) -> Path:
        """Absolute path of a blob; does not check existence."""
        return self.directory / filename

    def write(self, filename: str, data: bytes) -> Path:
        """Atomically write a blob, replacing any previous content."""
        target = self.path(filename)
        atomic_write_bytes(target, data)
        logger.debug(f"Wrote blob {filename} ({len(data)} bytes)")
        return target

    def read(self, filename: str) -> bytes:
        """Read a blob.

        Raises:
            FileNotFoundError: If the blob does not exist
        """
        return self.path(filename).read_bytes()

    def delete(self, filename: str, missing_ok: bool = False) -> bool:
        """Delete a blob.

        Args:
            filename: Blob filename
            missing_ok: Return False instead of raising when absent

        Returns:
            True if a file was deleted
        """
        try:
            self.path(filename).unlink()
        except FileNotFoundError:
            if missing_ok:
                return False
            raise
        logger.debug(f"Deleted blob {filename}")
        return True

    def exists(self, filename: str) -> bool:
        """True if the blob exists as a regular file."""
        return self.path(filename).is_file()

    def is_dir(self) -> bool:
        """True if the store directory exists."""
        return self.directory.is_dir()

    def list(self) -> Set[str]:
        """Names of all regular files in the store directory."""
        return {entry.name for entry in self.directory.iterdir() if entry.is_file()}

    def size(self, filename: str) -> int:
        """Size of a blob in bytes."""
        return self.path(filename).stat().st_size
