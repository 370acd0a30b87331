#!/usr/bin/env python3
"""
Plugin path resolution.

A plugin is found by kind, name and optional minimum version. A plugin
executable on the search path overrides the cache entirely, which supports
development scenarios.
"""

import logging
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .plugin_info import PluginCacheError, PluginDescriptor, PluginKind, PluginRecord
from .plugin_scanner import PluginScanner
from .plugin_version import SemanticVersion

logger = logging.getLogger(__name__)

ResolvedPath = Tuple[Optional[Path], Optional[Path]]


def select_plugin(plugins: List[PluginRecord],
                  kind: PluginKind,
                  name: str,
                  version: Optional[SemanticVersion] = None) -> Optional[PluginRecord]:
    """
    Pick the best installed plugin for a kind/name pair.

    Candidates are considered in the order given. Without a version the first
    candidate is taken; after that any newer candidate replaces the current
    match. With a version, the first candidate at or above it is taken and
    newer candidates replace it.

    Returns:
        The selected record, or None if nothing qualifies
    """
    match = None
    for plugin in plugins:
        if plugin.kind != kind or plugin.name != name:
            continue

        candidate = None
        if match is None and version is None:
            candidate = plugin
        elif match is not None and (
                match.version is None or
                (plugin.version is not None and plugin.version > match.version)):
            candidate = plugin
        elif version is not None and plugin.version is not None and plugin.version >= version:
            candidate = plugin

        if candidate is not None:
            match = candidate
            logger.debug(f"get_plugin_path({kind}, {name}, {version}): found candidate (#{match.version})")

    return match


class PluginResolver:
    """Resolves plugin executables from the search path or the plugin cache."""

    def __init__(self, scanner: PluginScanner, search_path: Optional[str] = None,
                 list_plugins: Optional[Callable[[], List[PluginRecord]]] = None):
        """
        Initialize the resolver.

        Args:
            scanner: Scanner over the plugin cache root
            search_path: Executable search path (defaults to $PATH)
            list_plugins: Source of installed plugins (defaults to scanner.list_plugins)
        """
        self.scanner = scanner
        self.search_path = search_path
        self.list_plugins = list_plugins or scanner.list_plugins

    def find_on_path(self, kind: PluginKind, name: str) -> Optional[Path]:
        """Look up the unversioned plugin executable on the search path."""
        filename = PluginDescriptor(kind=kind, name=name).file_prefix
        path = shutil.which(filename, path=self.search_path)
        return Path(path) if path else None

    def get_plugin_path(self, kind: Union[PluginKind, str], name: str,
                        version: Optional[Union[SemanticVersion, str]] = None) -> ResolvedPath:
        """
        Find a plugin's directory and executable path.

        Args:
            kind: Plugin kind
            name: Plugin name
            version: Optional minimum version

        Returns:
            Tuple of (directory, executable path). The directory is None when
            the plugin was found on the search path; both are None when no
            plugin matches.

        Raises:
            InvalidPluginError: If kind, name or version are malformed
            PluginCacheError: If the plugin cache cannot be read
        """
        request = PluginDescriptor(kind=kind, name=name, version=version)
        kind, version = request.kind, request.version

        path = self.find_on_path(kind, name)
        if path is not None:
            logger.debug(f"get_plugin_path({kind}, {name}, {version}): found on $PATH {path}")
            return None, path

        try:
            plugins = self.list_plugins()
        except PluginCacheError as e:
            raise PluginCacheError(f"loading plugin list: {e}") from e

        match = select_plugin(plugins, kind, name, version)
        if match is None:
            logger.debug(f"get_plugin_path({kind}, {name}, {version}): no match in cache")
            return None, None

        match_dir = match.path
        match_path = match.file_path
        logger.debug(f"get_plugin_path({kind}, {name}, {version}): found in cache at {match_path}")
        return match_dir, match_path
