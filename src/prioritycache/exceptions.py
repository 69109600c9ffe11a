"""Exception hierarchy for prioritycache.

Capacity problems are not exceptions: an item that cannot be admitted makes
``save``/``can_save`` return False. The classes here cover the failures a
caller cannot recover from by choosing a different size or priority.

Exception Hierarchy:
    PriorityCacheError (base)
    +-- ConfigurationError
    +-- IndexCorruptedError
    +-- StorageError
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union


class PriorityCacheError(Exception):
    """Base exception for all prioritycache errors.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
        cause: Original exception that caused this error (if any)
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary with error type, message, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(PriorityCacheError):
    """Invalid cache configuration.

    Examples:
        - Negative default maximum size
        - Unknown key in a YAML config file
        - Config file that is not a mapping
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        valid_values: Optional[list] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Description of configuration error
            config_key: Name of the invalid configuration key
            config_value: The invalid value provided
            valid_values: List of valid values (if applicable)
            cause: Original exception
        """
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = config_value
        if valid_values:
            details["valid_values"] = valid_values
        super().__init__(message, details=details, cause=cause)


class IndexCorruptedError(PriorityCacheError):
    """The persisted index cannot be decoded.

    Raised while opening a cache. The cache refuses to start instead of
    discarding the stored state; the file must be repaired or removed by hand.
    """

    def __init__(
        self,
        message: str,
        index_path: Optional[Union[str, Path]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details = {}
        if index_path is not None:
            details["index_path"] = str(index_path)
        super().__init__(message, details=details, cause=cause)
        self.index_path = Path(index_path) if index_path is not None else None


class StorageError(PriorityCacheError):
    """Cache directory is unusable.

    Examples:
        - Cache path exists but is a regular file
        - Default cache directory cannot be created
    """

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details = {}
        if path is not None:
            details["path"] = str(path)
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details, cause=cause)
