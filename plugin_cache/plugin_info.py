#!/usr/bin/env python3
"""
Plugin descriptors and on-disk naming.

Each plugin is installed into its own directory under the plugin cache root,
by default `~/.pulumi/plugins/<kind>-<name>-v<version>/`. A plugin directory
may contain many files, but the primary executable must be named
`pulumi-<kind>-<name>` (with `.exe` appended on Windows).
"""

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .plugin_version import SemanticVersion

logger = logging.getLogger(__name__)


class PluginCacheError(Exception):
    """Base exception for plugin cache operations."""
    pass


class InvalidPluginError(PluginCacheError):
    """Plugin descriptor is malformed."""
    pass


class PluginKind(str, Enum):
    """Kinds of plugins that may be dynamically loaded."""
    ANALYZER = "analyzer"    # resource analyzer
    LANGUAGE = "language"    # language host
    RESOURCE = "resource"    # resource provider for custom CRUD operations

    def __str__(self) -> str:
        return self.value


def is_plugin_kind(kind: str) -> bool:
    """Return True if kind names a valid plugin kind."""
    return kind in {k.value for k in PluginKind}


PLUGIN_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?$')

# Matches plugin directory names: KIND-NAME-vVERSION.
PLUGIN_DIR_PATTERN = re.compile(
    r'^(?P<kind>[a-z]+)-'
    r'(?P<name>[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)-'
    r'v(?P<version>[0-9]+\.[0-9]+\.[0-9]+(?:-[a-zA-Z0-9_.-]+)?(?:\+[a-zA-Z0-9.-]+)?)$'
)


def plugin_file_suffix() -> str:
    """Get the executable suffix for the current platform."""
    if os.name == "nt":
        return ".exe"
    return ""


@dataclass(frozen=True)
class PluginDescriptor:
    """
    Identity of a plugin: its kind, simple name and optional version.

    Kind and version may be passed as strings; they are validated and
    converted on construction.
    """
    kind: PluginKind
    name: str
    version: Optional[SemanticVersion] = None

    def __post_init__(self):
        if not isinstance(self.kind, PluginKind):
            if not isinstance(self.kind, str) or not is_plugin_kind(self.kind):
                raise InvalidPluginError(f"Invalid plugin kind: {self.kind!r}")
            object.__setattr__(self, "kind", PluginKind(self.kind))

        if not isinstance(self.name, str) or not PLUGIN_NAME_PATTERN.match(self.name):
            raise InvalidPluginError(f"Invalid plugin name: {self.name!r}")

        try:
            object.__setattr__(self, "version", SemanticVersion.coerce(self.version))
        except ValueError as e:
            raise InvalidPluginError(f"Invalid version for plugin {self.name}: {e}") from e

    @property
    def dir_name(self) -> str:
        """Expected plugin directory name."""
        dir_name = f"{self.kind}-{self.name}"
        if self.version is not None:
            dir_name = f"{dir_name}-v{self.version}"
        return dir_name

    @property
    def file_prefix(self) -> str:
        """Unversioned executable name, without the platform suffix."""
        return f"pulumi-{self.kind}-{self.name}"

    @property
    def file_name(self) -> str:
        """Expected executable file name for the current platform."""
        return self.file_prefix + plugin_file_suffix()

    def dir_path(self, plugin_dir: Union[str, Path]) -> Path:
        """Directory this plugin is installed into under the given cache root."""
        return Path(plugin_dir) / self.dir_name

    def file_path(self, plugin_dir: Union[str, Path]) -> Path:
        """Full path of this plugin's primary executable under the given cache root."""
        return self.dir_path(plugin_dir) / self.file_name

    def __str__(self) -> str:
        if self.version is not None:
            return f"{self.name}-{self.version}"
        return self.name


@dataclass(frozen=True)
class PluginRecord:
    """An installed plugin discovered in the cache."""
    descriptor: PluginDescriptor
    path: Path
    size: int = 0
    install_time: Optional[datetime] = field(default=None, compare=False)
    last_used_time: Optional[datetime] = field(default=None, compare=False)

    @property
    def kind(self) -> PluginKind:
        return self.descriptor.kind

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def version(self) -> Optional[SemanticVersion]:
        return self.descriptor.version

    @property
    def file_path(self) -> Path:
        return self.path / self.descriptor.file_name

    def __str__(self) -> str:
        return str(self.descriptor)


def parse_plugin_dir(dir_name: str) -> Optional[PluginDescriptor]:
    """
    Parse a plugin directory name back into a descriptor.

    Args:
        dir_name: Directory name (e.g., "resource-aws-v1.2.3")

    Returns:
        The descriptor, or None if the name does not denote a plugin
    """
    match = PLUGIN_DIR_PATTERN.match(dir_name)
    if not match:
        logger.debug(f"Skipping {dir_name}: does not match plugin directory pattern")
        return None

    kind = match.group("kind")
    if not is_plugin_kind(kind):
        logger.debug(f"Skipping {dir_name}: invalid plugin kind {kind}")
        return None

    try:
        version = SemanticVersion.parse(match.group("version"))
    except ValueError:
        logger.debug(f"Skipping {dir_name}: invalid plugin version {match.group('version')}")
        return None

    return PluginDescriptor(kind=PluginKind(kind), name=match.group("name"), version=version)
