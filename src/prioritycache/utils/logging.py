"""Structured logging utilities for prioritycache.

The library itself only creates loggers under the ``prioritycache``
hierarchy; handlers are installed by applications (or the CLI) through
:func:`configure_logging`.

Example usage:
    >>> from prioritycache.utils.logging import LogConfig, configure_logging, get_logger
    >>>
    >>> configure_logging(LogConfig(log_level="DEBUG", log_format="json"))
    >>> logger = get_logger("cache")
    >>> logger.info("Evicted items", count=3, bytes_freed=4096)
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Literal, Optional

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

ROOT_LOGGER_NAME = "prioritycache"
VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class LogConfig:
    """Configuration for prioritycache logging.

    Attributes:
        log_level: Default log level for all components
        log_format: Output format ('text' for human-readable, 'json' for structured)
        log_file: Optional file path for log output
        component_levels: Dictionary of component-specific log levels
        max_file_size_mb: Maximum log file size before rotation
        backup_count: Number of rotated log files to keep
        include_timestamp: Whether to include timestamps in text output
    """

    log_level: LogLevel = "WARNING"
    log_format: LogFormat = "text"
    log_file: Optional[str] = None
    component_levels: Dict[str, LogLevel] = field(default_factory=dict)
    max_file_size_mb: int = 10
    backup_count: int = 5
    include_timestamp: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.log_level.upper() not in VALID_LEVELS:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. "
                f"Must be one of: {sorted(VALID_LEVELS)}"
            )
        if self.log_format not in ("text", "json"):
            raise ValueError(
                f"Invalid log_format '{self.log_format}'. "
                "Must be 'text' or 'json'"
            )
        for component, level in self.component_levels.items():
            if level.upper() not in VALID_LEVELS:
                raise ValueError(
                    f"Invalid log level '{level}' for component '{component}'."
                )


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs one JSON object per record:
    {"timestamp": "...Z", "level": "INFO", "component": "cache", "message": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "component": record.name.split(".")[-1],
            "message": record.getMessage(),
        }

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_entry.update(extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter.

    2026-01-05 10:30:45 | INFO     | prioritycache.cache | Evicted 1 item(s) [count=1]
    """

    def __init__(self, include_timestamp: bool = True) -> None:
        if include_timestamp:
            fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        else:
            fmt = "%(levelname)-8s | %(name)s | %(message)s"
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, appending structured fields."""
        text = super().format(record)
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            extra_str = ", ".join(f"{k}={v}" for k, v in extra_fields.items())
            text = f"{text} [{extra_str}]"
        return text


class CacheLogger(logging.LoggerAdapter):
    """Logger adapter that accepts structured keyword fields.

    ``logger.info("Saved", key=fp, size=10)`` attaches ``key`` and ``size``
    to the record as ``extra_fields``.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """Move non-logging keyword arguments into extra_fields."""
        extra_fields = {}
        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel", "extra"):
                extra_fields[key] = kwargs.pop(key)

        if self.extra:
            extra_fields.update(self.extra)

        kwargs.setdefault("extra", {})
        kwargs["extra"]["extra_fields"] = extra_fields
        return msg, kwargs


def configure_logging(config: Optional[LogConfig] = None) -> None:
    """Install handlers on the ``prioritycache`` logger.

    Args:
        config: Logging configuration. If None, uses defaults.
    """
    if config is None:
        config = LogConfig()

    level = getattr(logging, config.log_level.upper())
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter
    if config.log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter(include_timestamp=config.include_timestamp)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    for component, component_level in config.component_levels.items():
        component_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
        component_logger.setLevel(getattr(logging, component_level.upper()))

    root_logger.propagate = False


def get_logger(component: str) -> CacheLogger:
    """Get a structured logger for a component.

    Args:
        component: Component name (e.g., 'cache', 'cli')

    Returns:
        CacheLogger wrapping ``prioritycache.<component>``
    """
    return CacheLogger(logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}"), {})


def configure_from_cli(
    verbose: int = 0,
    log_format: LogFormat = "text",
    log_file: Optional[str] = None,
) -> LogConfig:
    """Configure logging from command-line flags.

    Args:
        verbose: 0 = WARNING, 1 = INFO, 2+ = DEBUG
        log_format: Output format
        log_file: Optional log file path

    Returns:
        The applied LogConfig
    """
    if verbose >= 2:
        level: LogLevel = "DEBUG"
    elif verbose == 1:
        level = "INFO"
    else:
        level = "WARNING"
    config = LogConfig(log_level=level, log_format=log_format, log_file=log_file)
    configure_logging(config)
    return config
