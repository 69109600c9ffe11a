"""Tests for CLI interface."""
import io

import pytest
from rich.console import Console

from prioritycache.cache import PriorityCache
from prioritycache.cli import COMMANDS, create_parser, format_size, main
from prioritycache.fingerprint import fingerprint
from prioritycache.persistence import INDEX_FILENAME

KEY = "https://example.com/pics/photo.png"


@pytest.fixture
def run_cli(cache_dir):
    """Run the CLI against the shared cache directory and capture output."""
    def _run(*argv, max_size=1000):
        output = io.StringIO()
        console = Console(file=output, width=200, color_system=None)
        args = ["--dir", str(cache_dir), "--max-size", str(max_size), *argv]
        code = main(args, console=console)
        return code, output.getvalue()
    return _run


@pytest.fixture
def blob_file(tmp_path):
    """A 100-byte file to cache."""
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x01" * 100)
    return path


class TestArgumentParsing:
    """Test CLI argument parsing."""

    def test_put_arguments(self):
        """Test parser handles put command arguments."""
        args = create_parser().parse_args([
            "--dir", "/tmp/cache",
            "put", "--key", KEY, "--priority", "5", "photo.png",
        ])

        assert args.command == "put"
        assert args.directory == "/tmp/cache"
        assert args.key == KEY
        assert args.priority == 5
        assert args.file == "photo.png"

    def test_global_defaults(self):
        """Test global option defaults."""
        args = create_parser().parse_args(["info"])

        assert args.directory is None
        assert args.max_size is None
        assert args.config is None
        assert args.verbose == 0
        assert args.log_format == "text"

    def test_verbosity_counts(self):
        """Test -v can be repeated."""
        args = create_parser().parse_args(["-vv", "list"])
        assert args.verbose == 2

    def test_command_required(self):
        """Test a subcommand must be given."""
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_every_command_has_a_handler(self):
        """Test each subcommand is dispatched."""
        parser = create_parser()
        subparsers = next(a for a in parser._actions if a.dest == "command")
        assert set(subparsers.choices) == set(COMMANDS)


class TestFormatSize:
    """Tests for format_size."""

    @pytest.mark.parametrize(
        "num_bytes,expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1024, "1.0 KiB"),
            (1536, "1.5 KiB"),
            (100 * 1024 * 1024, "100.0 MiB"),
            (3 * 1024 ** 3, "3.0 GiB"),
        ],
    )
    def test_units(self, num_bytes, expected):
        """Test byte counts are rendered with binary units."""
        assert format_size(num_bytes) == expected


class TestCommands:
    """Tests for running subcommands end to end."""

    def test_info_on_new_cache(self, run_cli, cache_dir):
        """Test info shows an empty cache."""
        code, output = run_cli("info", max_size=2048)

        assert code == 0
        assert "Entries" in output
        assert "2048 bytes" in output

    def test_put_then_list_and_path(self, run_cli, cache_dir, blob_file):
        """Test caching a file and finding it again."""
        code, output = run_cli("put", "--key", KEY, "--priority", "5", str(blob_file))
        assert code == 0
        assert "Cached" in output

        code, output = run_cli("list")
        assert code == 0
        assert f"{fingerprint(KEY)}.png" in output

        code, output = run_cli("path", KEY)
        assert code == 0
        assert str(cache_dir / f"{fingerprint(KEY)}.png") in output

    def test_put_rejected(self, run_cli, blob_file):
        """Test a file larger than the cache is not cached."""
        code, output = run_cli("put", "--key", KEY, "--priority", "5", str(blob_file), max_size=10)

        assert code == 1
        assert "Not cached" in output

    def test_put_missing_file(self, run_cli, tmp_path):
        """Test a missing input file is an error."""
        code, output = run_cli("put", "--key", KEY, "--priority", "5", str(tmp_path / "nope"))

        assert code == 2
        assert "Error" in output

    def test_put_negative_priority(self, run_cli, blob_file):
        """Test a negative priority is an error."""
        code, _ = run_cli("put", "--key", KEY, "--priority", "-1", str(blob_file))
        assert code == 2

    def test_path_unknown_key(self, run_cli):
        """Test asking for an uncached key."""
        code, output = run_cli("path", KEY)

        assert code == 1
        assert "Not cached" in output

    def test_remove(self, run_cli, cache_dir, blob_file):
        """Test removing a cached key and then an unknown one."""
        run_cli("put", "--key", KEY, "--priority", "5", str(blob_file))

        code, _ = run_cli("remove", KEY)
        assert code == 0
        assert not PriorityCache(1, directory=cache_dir).contains(KEY)

        code, _ = run_cli("remove", KEY)
        assert code == 1

    def test_reprioritize(self, run_cli, cache_dir, blob_file):
        """Test changing a priority from the command line."""
        run_cli("put", "--key", KEY, "--priority", "5", str(blob_file))

        code, _ = run_cli("reprioritize", KEY, "9")
        assert code == 0
        assert PriorityCache(1, directory=cache_dir).index.get(fingerprint(KEY)).priority == 9

        code, output = run_cli("reprioritize", KEY, "9")
        assert code == 1
        assert "Unchanged" in output

    def test_set_max_evicts(self, run_cli, cache_dir, blob_file):
        """Test shrinking the cache from the command line."""
        run_cli("put", "--key", KEY, "--priority", "5", str(blob_file))

        code, output = run_cli("set-max", "50")

        assert code == 0
        assert "1 item(s) evicted" in output
        reopened = PriorityCache(1, directory=cache_dir)
        assert reopened.max_total_size == 50
        assert len(reopened) == 0

    def test_clear(self, run_cli, cache_dir, blob_file):
        """Test clearing leaves only the index file."""
        run_cli("put", "--key", KEY, "--priority", "5", str(blob_file))

        code, _ = run_cli("clear")

        assert code == 0
        assert [p.name for p in cache_dir.iterdir()] == [INDEX_FILENAME]

    def test_corrupt_index(self, run_cli, cache_dir):
        """Test a corrupt index is reported as an error."""
        (cache_dir / INDEX_FILENAME).write_text("{", encoding="utf-8")

        code, output = run_cli("info")

        assert code == 2
        assert "Error" in output

    def test_config_file(self, cache_dir, tmp_path):
        """Test settings are read from a YAML config file."""
        config_path = tmp_path / "prioritycache.yaml"
        config_path.write_text(
            f"cache:\n  directory: {cache_dir}\n  default_max_total_size: 4096\n",
            encoding="utf-8",
        )
        output = io.StringIO()

        code = main(["--config", str(config_path), "info"], console=Console(file=output, width=200))

        assert code == 0
        assert "4096 bytes" in output.getvalue()
