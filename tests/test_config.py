"""Tests for CacheConfig and YAML config loading."""
from pathlib import Path

import pytest

from prioritycache.config import DEFAULT_MAX_TOTAL_SIZE, CacheConfig, load_config
from prioritycache.exceptions import ConfigurationError
from prioritycache.persistence import INDEX_FILENAME


class TestCacheConfigCreation:
    """Test CacheConfig creation with defaults."""

    def test_defaults(self):
        """Test an empty config uses the documented defaults."""
        config = CacheConfig()

        assert config.default_max_total_size == DEFAULT_MAX_TOTAL_SIZE
        assert config.directory is None
        assert config.app_name is None
        assert config.persist_on_open is False
        assert config.prune_orphans_on_open is False
        assert config.gate_on_disk_capacity is True
        assert config.index_filename == INDEX_FILENAME

    def test_directory_string_converted(self, tmp_path):
        """Test a string directory becomes a Path."""
        config = CacheConfig(directory=str(tmp_path))

        assert isinstance(config.directory, Path)
        assert config.directory == tmp_path

    def test_directory_expands_user(self):
        """Test a home-relative directory is expanded."""
        config = CacheConfig(directory="~/somewhere")
        assert config.directory == Path.home() / "somewhere"


class TestCacheConfigValidation:
    """Test CacheConfig validation."""

    def test_negative_max_raises(self):
        """Test a negative maximum is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            CacheConfig(default_max_total_size=-1)

        assert exc_info.value.details["config_key"] == "default_max_total_size"

    @pytest.mark.parametrize("value", ["100", 1.5, True])
    def test_non_integer_max_raises(self, value):
        """Test non-integer maximums are rejected."""
        with pytest.raises(ConfigurationError, match="must be an integer"):
            CacheConfig(default_max_total_size=value)

    def test_zero_max_allowed(self):
        """Test a zero maximum is a valid, if useless, setting."""
        assert CacheConfig(default_max_total_size=0).default_max_total_size == 0

    @pytest.mark.parametrize("name", ["", "sub/index.json", "sub\\index.json"])
    def test_bad_index_filename(self, name):
        """Test the index filename must be a plain filename."""
        with pytest.raises(ConfigurationError):
            CacheConfig(index_filename=name)


class TestCacheConfigDict:
    """Test dictionary conversion."""

    def test_round_trip(self, tmp_path):
        """Test to_dict output is accepted by from_dict."""
        config = CacheConfig(default_max_total_size=42, directory=tmp_path, prune_orphans_on_open=True)

        restored = CacheConfig.from_dict(config.to_dict())

        assert restored == config

    def test_unknown_key(self):
        """Test unknown keys are reported."""
        with pytest.raises(ConfigurationError, match="Unknown configuration keys: bogus"):
            CacheConfig.from_dict({"bogus": 1})


class TestLoadConfig:
    """Test load_config."""

    def test_cache_section(self, tmp_path):
        """Test settings under a cache section are loaded."""
        path = tmp_path / "prioritycache.yaml"
        path.write_text(
            "cache:\n"
            "  default_max_total_size: 2048\n"
            f"  directory: {tmp_path / 'blobs'}\n"
            "  persist_on_open: true\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.default_max_total_size == 2048
        assert config.directory == tmp_path / "blobs"
        assert config.persist_on_open is True

    def test_top_level_settings(self, tmp_path):
        """Test settings may also sit at the top level."""
        path = tmp_path / "config.yml"
        path.write_text("app_name: demo\ngate_on_disk_capacity: false\n", encoding="utf-8")

        config = load_config(path)

        assert config.app_name == "demo"
        assert config.gate_on_disk_capacity is False

    def test_empty_file(self, tmp_path):
        """Test an empty file gives the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == CacheConfig()

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML raises ConfigurationError."""
        path = tmp_path / "bad.yaml"
        path.write_text("cache: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        """Test a top-level list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_config(path)

    def test_invalid_value(self, tmp_path):
        """Test invalid values in the file are reported."""
        path = tmp_path / "neg.yaml"
        path.write_text("cache:\n  default_max_total_size: -5\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_config(path)
