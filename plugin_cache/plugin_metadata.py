#!/usr/bin/env python3
"""
Disk metadata for installed plugins.

Sizes and timestamps are descriptive only; they never influence which
plugin is resolved.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class PluginMetadata:
    """Size and timestamps of a plugin directory."""
    size: int = 0
    install_time: Optional[datetime] = None
    last_used_time: Optional[datetime] = None


def get_plugin_size(path: Union[str, Path]) -> int:
    """
    Recursively compute how much space is devoted to a plugin.

    Only regular files are counted; symlinks are neither followed nor
    counted. A missing path has size 0.

    Args:
        path: Plugin directory (or file)

    Returns:
        Total size in bytes
    """
    try:
        entries = list(os.scandir(path))
    except FileNotFoundError:
        return 0
    except NotADirectoryError:
        try:
            return os.stat(path, follow_symlinks=False).st_size
        except FileNotFoundError:
            return 0

    size = 0
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                size += get_plugin_size(entry.path)
            elif entry.is_file(follow_symlinks=False):
                size += entry.stat(follow_symlinks=False).st_size
        except FileNotFoundError:
            # Deleted while we were walking.
            continue
    return size


def get_install_time(stat_result: os.stat_result) -> Optional[datetime]:
    """Birth time from a stat result, if the platform records one."""
    birth_time = getattr(stat_result, "st_birthtime", None)
    if birth_time is None:
        return None
    return datetime.fromtimestamp(birth_time)


def get_last_used_time(stat_result: os.stat_result) -> datetime:
    """Access time from a stat result."""
    return datetime.fromtimestamp(stat_result.st_atime)


def probe_plugin_metadata(path: Union[str, Path]) -> PluginMetadata:
    """
    Collect size and timestamps for a plugin directory.

    A directory that disappears while being probed yields an empty result
    rather than an error, since scans and deletes may race.
    """
    try:
        stat_result = os.stat(path)
    except FileNotFoundError:
        return PluginMetadata()

    return PluginMetadata(
        size=get_plugin_size(path),
        install_time=get_install_time(stat_result),
        last_used_time=get_last_used_time(stat_result),
    )
