"""Shared pytest fixtures for prioritycache tests."""
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable

import pytest

from prioritycache import PriorityCache
from prioritycache.utils.logging import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_package_logging():
    """Undo handlers installed by configure_logging so caplog sees records."""
    yield
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp, ignore_errors=True)


@pytest.fixture
def cache_dir(temp_dir) -> Path:
    """An existing, empty cache directory."""
    directory = temp_dir / "cache"
    directory.mkdir()
    return directory


@pytest.fixture
def url() -> Callable[[str], str]:
    """Build a remote key; include an extension in the path to get one."""
    def _url(path: str) -> str:
        return f"https://example.com{path}"
    return _url


@pytest.fixture
def payload() -> Callable[[int], bytes]:
    """Build a blob of the given size."""
    def _payload(size: int) -> bytes:
        return b"\xab" * size
    return _payload


@pytest.fixture
def open_cache(cache_dir) -> Callable[..., PriorityCache]:
    """Open a PriorityCache on the shared cache directory."""
    def _open(max_total_size: int = 1000, **kwargs) -> PriorityCache:
        return PriorityCache(max_total_size, directory=cache_dir, **kwargs)
    return _open
