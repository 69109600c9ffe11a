"""Tests for the exception hierarchy."""
from pathlib import Path

import pytest

from prioritycache.exceptions import (
    ConfigurationError,
    IndexCorruptedError,
    PriorityCacheError,
    StorageError,
)


class TestHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize("cls", [ConfigurationError, IndexCorruptedError, StorageError])
    def test_subclasses_base(self, cls):
        """Test every error derives from PriorityCacheError."""
        assert issubclass(cls, PriorityCacheError)


class TestPriorityCacheError:
    """Tests for the base exception."""

    def test_str_without_details(self):
        """Test the message alone is shown without details."""
        assert str(PriorityCacheError("boom")) == "boom"

    def test_str_with_details(self):
        """Test details are appended to the message."""
        error = PriorityCacheError("boom", details={"a": 1})
        assert str(error) == "boom [a=1]"

    def test_cause_is_chained(self):
        """Test the cause is exposed and chained."""
        cause = OSError("disk")
        error = PriorityCacheError("boom", cause=cause)

        assert error.cause is cause
        assert error.__cause__ is cause

    def test_to_dict(self):
        """Test JSON-friendly conversion."""
        error = StorageError("bad dir", path="/tmp/x", operation="open", cause=OSError("nope"))

        assert error.to_dict() == {
            "error_type": "StorageError",
            "message": "bad dir",
            "details": {"path": "/tmp/x", "operation": "open"},
            "cause": "nope",
        }


class TestSpecificErrors:
    """Tests for the concrete exceptions."""

    def test_configuration_error_details(self):
        """Test configuration context is recorded."""
        error = ConfigurationError(
            "bad value",
            config_key="default_max_total_size",
            config_value=-1,
            valid_values=[0, 1],
        )

        assert error.details == {
            "config_key": "default_max_total_size",
            "config_value": -1,
            "valid_values": [0, 1],
        }

    def test_index_corrupted_path(self):
        """Test the index path is kept as a Path."""
        error = IndexCorruptedError("corrupt", index_path="/tmp/cache/PriorityCacheIndex.json")

        assert error.index_path == Path("/tmp/cache/PriorityCacheIndex.json")
        assert "index_path=" in str(error)

    def test_index_corrupted_without_path(self):
        """Test the path is optional."""
        assert IndexCorruptedError("corrupt").index_path is None
