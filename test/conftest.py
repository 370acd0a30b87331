"""
Pytest configuration and fixtures for plugin cache testing.

This module provides shared fixtures for building throwaway plugin cache
roots and plugin tarballs.
"""

import io
import logging
import os
import tarfile
import tempfile
from pathlib import Path
from typing import Callable, Generator, Iterable, Tuple

import pytest

from plugin_cache.plugin_config import LOGGER_NAME


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "posix: marks tests as relying on POSIX permissions or executable lookup"
    )


def pytest_collection_modifyitems(config, items):
    """Skip POSIX-only tests on Windows."""
    if os.name != "nt":
        return
    skip_posix = pytest.mark.skip(reason="requires POSIX file permissions")
    for item in items:
        if "posix" in item.keywords:
            item.add_marker(skip_posix)


def build_tarball(entries: Iterable[Tuple]) -> io.BytesIO:
    """
    Build an in-memory .tar.gz archive.

    Entries are tuples of:
        ("dir", name)
        ("file", name, data[, mode])
        ("symlink", name, target)
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for entry in entries:
            kind, name = entry[0], entry[1]
            info = tarfile.TarInfo(name)
            if kind == "dir":
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
            elif kind == "file":
                data = entry[2]
                info.size = len(data)
                info.mode = entry[3] if len(entry) > 3 else 0o644
                tar.addfile(info, io.BytesIO(data))
            elif kind == "symlink":
                info.type = tarfile.SYMTYPE
                info.linkname = entry[2]
                tar.addfile(info)
            else:
                raise ValueError(f"Unknown tar entry kind: {kind}")
    buffer.seek(0)
    return buffer


def make_plugin_dirs(plugin_dir: Path, *names: str) -> None:
    """Create empty directories under a cache root."""
    for name in names:
        (plugin_dir / name).mkdir(parents=True, exist_ok=True)


@pytest.fixture
def temp_plugin_dir() -> Generator[Path, None, None]:
    """Temporary plugin cache root (not created)."""
    with tempfile.TemporaryDirectory(prefix="plugin-cache-test-") as temp_dir:
        yield Path(temp_dir) / "plugins"


@pytest.fixture
def plugin_tarball() -> Callable[..., io.BytesIO]:
    """Factory for in-memory plugin tarballs."""
    return build_tarball


@pytest.fixture
def plugin_dirs() -> Callable[..., None]:
    """Factory creating empty plugin directories under a cache root."""
    return make_plugin_dirs


@pytest.fixture
def empty_search_path(tmp_path) -> str:
    """A search path containing no executables."""
    bin_dir = tmp_path / "empty-bin"
    bin_dir.mkdir()
    return str(bin_dir)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Remove handlers added by setup_logging between tests."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
