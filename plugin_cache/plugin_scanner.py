#!/usr/bin/env python3
"""
Plugin cache scanner.

The cache root directory is the only record of what is installed; every
listing is rebuilt from the filesystem.
"""

import logging
import os
from pathlib import Path
from typing import List, Union

from .plugin_info import PluginCacheError, PluginDescriptor, PluginRecord, parse_plugin_dir
from .plugin_metadata import probe_plugin_metadata

logger = logging.getLogger(__name__)


class PluginScanner:
    """Enumerates installed plugins under a cache root."""

    def __init__(self, plugin_dir: Union[str, Path]):
        """
        Initialize the scanner.

        Args:
            plugin_dir: Plugin cache root directory
        """
        self.plugin_dir = Path(plugin_dir)

    def list_plugins(self) -> List[PluginRecord]:
        """
        Get the list of installed plugins.

        Returns:
            Records for every well-formed plugin directory, sorted by
            directory name. Empty if the cache root does not exist.

        Raises:
            PluginCacheError: If the cache root cannot be read
        """
        try:
            entries = sorted(os.scandir(self.plugin_dir), key=lambda e: e.name)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise PluginCacheError(f"reading plugin directory {self.plugin_dir}: {e}") from e

        plugins = []
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False
            if not is_dir:
                logger.debug(f"Skipping file in plugin directory: {entry.name}")
                continue

            descriptor = parse_plugin_dir(entry.name)
            if descriptor is None:
                continue

            path = self.plugin_dir / entry.name
            try:
                metadata = probe_plugin_metadata(path)
            except OSError as e:
                raise PluginCacheError(f"getting plugin dir {path} size: {e}") from e
            plugins.append(PluginRecord(
                descriptor=descriptor,
                path=path,
                size=metadata.size,
                install_time=metadata.install_time,
                last_used_time=metadata.last_used_time,
            ))

        return plugins

    def has_plugin(self, descriptor: PluginDescriptor) -> bool:
        """Return True if the exact plugin directory exists."""
        return descriptor.dir_path(self.plugin_dir).is_dir()

    def has_plugin_gte(self, descriptor: PluginDescriptor) -> bool:
        """
        Return True if the plugin exists at the given version or greater.

        Raises:
            PluginCacheError: If the cache root cannot be read
        """
        if self.has_plugin(descriptor):
            return True
        return has_plugin_gte_in(descriptor, self.list_plugins())


def has_plugin_gte_in(descriptor: PluginDescriptor, plugins: List[PluginRecord]) -> bool:
    """Return True if any of plugins matches descriptor's kind and name at >= its version."""
    if descriptor.version is None:
        return False
    for plugin in plugins:
        if (plugin.kind == descriptor.kind and
                plugin.name == descriptor.name and
                plugin.version is not None and
                plugin.version >= descriptor.version):
            return True
    return False
