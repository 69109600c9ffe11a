"""Configuration for prioritycache.

Settings can be built directly, from a dictionary, or from a YAML file::

    # prioritycache.yaml
    cache:
      default_max_total_size: 104857600   # 100 MB
      directory: ~/.cache/myapp/images
      persist_on_open: false
      prune_orphans_on_open: true
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import ConfigurationError
from .index import MAX_UNSIGNED
from .persistence import INDEX_FILENAME

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOTAL_SIZE = 100 * 1024 * 1024


@dataclass
class CacheConfig:
    """Configuration for a PriorityCache.

    Attributes:
        default_max_total_size: Maximum total size in bytes for a new cache;
            an existing index keeps its own committed maximum
        directory: Cache directory (None = per-application default)
        app_name: Directory name used by the default-directory resolver
        persist_on_open: Commit the index while opening, so the index file
            exists before the first mutation
        prune_orphans_on_open: Delete files not referenced by the index
            while opening
        gate_on_disk_capacity: Reject items larger than the free disk space
        index_filename: Name of the index file inside the directory
    """
    default_max_total_size: int = DEFAULT_MAX_TOTAL_SIZE
    directory: Optional[Path] = None
    app_name: Optional[str] = None
    persist_on_open: bool = False
    prune_orphans_on_open: bool = False
    gate_on_disk_capacity: bool = True
    index_filename: str = field(default=INDEX_FILENAME)

    def __post_init__(self) -> None:
        """Validate configuration and convert paths."""
        if isinstance(self.default_max_total_size, bool) or not isinstance(
            self.default_max_total_size, int
        ):
            raise ConfigurationError(
                "default_max_total_size must be an integer",
                config_key="default_max_total_size",
                config_value=self.default_max_total_size,
            )
        if not 0 <= self.default_max_total_size <= MAX_UNSIGNED:
            raise ConfigurationError(
                "default_max_total_size must be between 0 and 2**64-1",
                config_key="default_max_total_size",
                config_value=self.default_max_total_size,
            )

        if self.directory is not None and not isinstance(self.directory, Path):
            self.directory = Path(self.directory).expanduser()

        if not self.index_filename or "/" in self.index_filename or "\\" in self.index_filename:
            raise ConfigurationError(
                "index_filename must be a plain filename",
                config_key="index_filename",
                config_value=self.index_filename,
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        """Create CacheConfig from a dictionary.

        Raises:
            ConfigurationError: On unknown keys
        """
        valid_keys = [f.name for f in fields(cls)]
        unknown = sorted(set(data) - set(valid_keys))
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                config_key=unknown[0],
                valid_values=valid_keys,
            )
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "default_max_total_size": self.default_max_total_size,
            "directory": str(self.directory) if self.directory else None,
            "app_name": self.app_name,
            "persist_on_open": self.persist_on_open,
            "prune_orphans_on_open": self.prune_orphans_on_open,
            "gate_on_disk_capacity": self.gate_on_disk_capacity,
            "index_filename": self.index_filename,
        }


def load_config(path: Union[str, Path]) -> CacheConfig:
    """Load a CacheConfig from a YAML file.

    The settings may sit at the top level or under a ``cache:`` section.

    Args:
        path: YAML file path

    Returns:
        Parsed configuration

    Raises:
        ConfigurationError: If the file is missing, invalid YAML, or invalid config
    """
    path = Path(path).expanduser()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}", cause=e) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", cause=e) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    if "cache" in data:
        data = data["cache"] or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"'cache' section in {path} must be a mapping")

    logger.debug(f"Loaded cache configuration from {path}")
    return CacheConfig.from_dict(data)
