#!/usr/bin/env python3
"""
Plugin manager for the plugin cache.

This module provides the single entry point used by the rest of the tool to
list, resolve, install and delete plugins under one cache root, and a small
command line interface over the same operations.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from .plugin_config import PluginCacheConfig, get_plugin_dir, load_config, setup_logging
from .plugin_info import PluginCacheError, PluginDescriptor, PluginKind, PluginRecord
from .plugin_installer import PluginInstaller
from .plugin_resolver import PluginResolver, ResolvedPath
from .plugin_scanner import PluginScanner, has_plugin_gte_in
from .plugin_version import SemanticVersion


class PluginManager:
    """
    Facade over the plugin cache.

    The cache root is resolved once, from an explicit directory or from
    configuration. With use_index enabled the scanned plugin list is kept in
    memory and reused until this manager installs or deletes a plugin, or
    invalidate() is called; otherwise every query rescans the cache root.
    """

    def __init__(self,
                 plugin_dir: Optional[Union[str, Path]] = None,
                 config: Optional[PluginCacheConfig] = None,
                 search_path: Optional[str] = None,
                 use_index: bool = False,
                 verbose: bool = False):
        """
        Initialize the plugin manager.

        Args:
            plugin_dir: Plugin cache root (resolved from config when omitted)
            config: Plugin cache configuration
            search_path: Executable search path for overrides (defaults to $PATH)
            use_index: Keep scanned plugins in memory between queries
            verbose: Enable verbose logging

        Raises:
            PluginDirError: If the cache root cannot be determined
        """
        self.config = config or PluginCacheConfig()
        self.plugin_dir = Path(plugin_dir) if plugin_dir is not None else get_plugin_dir(self.config)
        self.verbose = verbose
        self.use_index = use_index
        self._index: Optional[List[PluginRecord]] = None

        self.scanner = PluginScanner(self.plugin_dir)
        self.installer = PluginInstaller(self.plugin_dir)
        self.resolver = PluginResolver(self.scanner, search_path=search_path,
                                       list_plugins=self.get_plugins)

    def log(self, message: str) -> None:
        """Log a message if verbose mode is enabled."""
        if self.verbose:
            print(f"[plugin-cache] {message}", file=sys.stderr)

    def invalidate(self) -> None:
        """Drop the in-memory plugin index."""
        self._index = None

    def get_plugins(self) -> List[PluginRecord]:
        """Get the list of installed plugins."""
        if not self.use_index:
            return self.scanner.list_plugins()
        if self._index is None:
            self._index = self.scanner.list_plugins()
            self.log(f"Indexed {len(self._index)} plugins in {self.plugin_dir}")
        return list(self._index)

    def has_plugin(self, descriptor: PluginDescriptor) -> bool:
        """Return True if the exact plugin version is installed."""
        return self.scanner.has_plugin(descriptor)

    def has_plugin_gte(self, descriptor: PluginDescriptor) -> bool:
        """Return True if the plugin is installed at the given version or greater."""
        if self.has_plugin(descriptor):
            return True
        return has_plugin_gte_in(descriptor, self.get_plugins())

    def get_plugin_path(self, kind: Union[PluginKind, str], name: str,
                        version: Optional[Union[SemanticVersion, str]] = None) -> ResolvedPath:
        """Find a plugin's directory and executable; see PluginResolver.get_plugin_path."""
        return self.resolver.get_plugin_path(kind, name, version)

    def install_plugin(self, descriptor: PluginDescriptor, tarball: BinaryIO) -> Path:
        """Install a plugin tarball into the cache."""
        try:
            plugin_dir = self.installer.install(descriptor, tarball)
        finally:
            self.invalidate()
        self.log(f"Installed {descriptor} at {plugin_dir}")
        return plugin_dir

    def delete_plugin(self, descriptor: PluginDescriptor) -> None:
        """Remove a plugin from the cache."""
        self.installer.delete(descriptor)
        self.invalidate()
        self.log(f"Deleted {descriptor}")


def format_size(size: int) -> str:
    """Format a byte count for display."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024


def plugin_to_dict(plugin: PluginRecord) -> dict:
    """Convert a plugin record to a JSON-serializable dictionary."""
    return {
        "kind": str(plugin.kind),
        "name": plugin.name,
        "version": str(plugin.version) if plugin.version is not None else None,
        "path": str(plugin.path),
        "size": plugin.size,
        "install_time": plugin.install_time.isoformat() if plugin.install_time else None,
        "last_used_time": plugin.last_used_time.isoformat() if plugin.last_used_time else None,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for plugin cache management."""
    parser = argparse.ArgumentParser(description="Manage the local plugin cache")
    parser.add_argument("--config", help="Plugin cache configuration file (YAML)")
    parser.add_argument("--plugin-dir", help="Plugin cache root (overrides configuration)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ls_parser = subparsers.add_parser("ls", help="List installed plugins")
    ls_parser.add_argument("--json", action="store_true", help="Output as JSON")

    which_parser = subparsers.add_parser("which", help="Resolve a plugin executable")
    which_parser.add_argument("kind", help="Plugin kind (analyzer, language, resource)")
    which_parser.add_argument("name", help="Plugin name")
    which_parser.add_argument("version", nargs="?", help="Minimum plugin version")

    install_parser = subparsers.add_parser("install", help="Install a plugin from a .tar.gz archive")
    install_parser.add_argument("kind", help="Plugin kind (analyzer, language, resource)")
    install_parser.add_argument("name", help="Plugin name")
    install_parser.add_argument("version", help="Plugin version")
    install_parser.add_argument("archive", help="Path to the plugin .tar.gz archive")

    rm_parser = subparsers.add_parser("rm", help="Remove an installed plugin")
    rm_parser.add_argument("kind", help="Plugin kind (analyzer, language, resource)")
    rm_parser.add_argument("name", help="Plugin name")
    rm_parser.add_argument("version", help="Plugin version")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
        if args.verbose:
            config.log_level = "DEBUG"
        setup_logging(config)

        manager = PluginManager(plugin_dir=args.plugin_dir, config=config, verbose=args.verbose)

        if args.command == "ls":
            plugins = manager.get_plugins()
            if args.json:
                print(json.dumps([plugin_to_dict(p) for p in plugins], indent=2))
            else:
                for plugin in plugins:
                    last_used = plugin.last_used_time.strftime("%Y-%m-%d %H:%M") if plugin.last_used_time else "n/a"
                    print(f"{plugin.name:<20} {plugin.kind!s:<10} {plugin.version!s:<16} "
                          f"{format_size(plugin.size):>10}  last used {last_used}")
                total = sum(p.size for p in plugins)
                print(f"{len(plugins)} plugins, {format_size(total)} total")

        elif args.command == "which":
            _, path = manager.get_plugin_path(args.kind, args.name, args.version)
            if path is None:
                print(f"ERROR: no {args.kind} plugin '{args.name}' found", file=sys.stderr)
                return 1
            print(path)

        elif args.command == "install":
            descriptor = PluginDescriptor(kind=args.kind, name=args.name, version=args.version)
            with open(args.archive, "rb") as tarball:
                plugin_dir = manager.install_plugin(descriptor, tarball)
            print(f"Installed {descriptor} to {plugin_dir}")

        elif args.command == "rm":
            descriptor = PluginDescriptor(kind=args.kind, name=args.name, version=args.version)
            manager.delete_plugin(descriptor)
            print(f"Removed {descriptor}")

    except (PluginCacheError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
