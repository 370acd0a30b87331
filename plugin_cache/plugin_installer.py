#!/usr/bin/env python3
"""
Plugin installation and removal.

Plugins are distributed as gzip-compressed tarballs containing only
directories and regular files. Archives are expanded in place into the
plugin's cache directory; there is no staging step, so a failed install can
leave a partially populated directory behind.
"""

import logging
import os
import shutil
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO, Union

from .plugin_info import PluginCacheError, PluginDescriptor

logger = logging.getLogger(__name__)

# Errors raised by tarfile/gzip while reading a damaged or non-gzip stream.
ARCHIVE_ERRORS = (tarfile.TarError, zlib.error, EOFError, OSError)


class PluginInstallError(PluginCacheError):
    """Plugin archive could not be installed."""
    pass


class UnsupportedEntryError(PluginInstallError):
    """Plugin archive contains an entry that is neither a directory nor a regular file."""
    pass


class PluginInstaller:
    """Expands plugin tarballs into, and deletes plugins from, a cache root."""

    def __init__(self, plugin_dir: Union[str, Path]):
        """
        Initialize the installer.

        Args:
            plugin_dir: Plugin cache root directory
        """
        self.plugin_dir = Path(plugin_dir)

    def install(self, descriptor: PluginDescriptor, tarball: BinaryIO) -> Path:
        """
        Install a plugin's tarball into the cache.

        The tarball stream is closed before returning, whether or not the
        install succeeds.

        Args:
            descriptor: Plugin to install; must carry a version
            tarball: Readable stream of a .tar.gz archive

        Returns:
            The plugin directory

        Raises:
            PluginInstallError: If the archive cannot be read or written out
            UnsupportedEntryError: If the archive holds links or special files
        """
        try:
            plugin_dir = descriptor.dir_path(self.plugin_dir)
            try:
                os.makedirs(plugin_dir, mode=0o700, exist_ok=True)
            except OSError as e:
                raise PluginInstallError(f"creating plugin directory {plugin_dir}: {e}") from e

            try:
                archive = tarfile.open(fileobj=tarball, mode="r|gz")
            except ARCHIVE_ERRORS as e:
                raise PluginInstallError(f"unzipping {descriptor}: {e}") from e

            with archive:
                members = iter(archive)
                while True:
                    try:
                        member = next(members)
                    except StopIteration:
                        break
                    except ARCHIVE_ERRORS as e:
                        raise PluginInstallError(f"untarring {descriptor}: {e}") from e
                    self._extract_member(archive, member, plugin_dir)

            logger.info(f"Installed plugin {descriptor} into {plugin_dir}")
            return plugin_dir
        finally:
            tarball.close()

    def _member_path(self, member: tarfile.TarInfo, plugin_dir: Path) -> Path:
        """Target path of an archive entry, refusing entries that escape the plugin directory."""
        root = os.path.abspath(plugin_dir)
        path = os.path.abspath(os.path.join(root, member.name))
        if os.path.commonpath([root, path]) != root:
            raise PluginInstallError(f"untarring {member.name}: path escapes plugin directory")
        return Path(path)

    def _extract_member(self, archive: tarfile.TarFile, member: tarfile.TarInfo, plugin_dir: Path) -> None:
        """Write a single archive entry under the plugin directory."""
        if not (member.isdir() or member.isreg()):
            raise UnsupportedEntryError(
                f"unexpected plugin file type {member.name} ({member.type!r})")

        path = self._member_path(member, plugin_dir)

        if member.isdir():
            try:
                os.makedirs(path, mode=0o700, exist_ok=True)
            except OSError as e:
                raise PluginInstallError(f"untarring dir {path}: {e}") from e
            logger.debug(f"Extracted directory {member.name}")
            return

        try:
            os.makedirs(path.parent, mode=0o700, exist_ok=True)
            # Existing files are overwritten in place, not truncated.
            fd = os.open(path, os.O_CREAT | os.O_RDWR, member.mode & 0o7777)
        except OSError as e:
            raise PluginInstallError(f"opening file {path} for untar: {e}") from e

        with os.fdopen(fd, "r+b") as dst:
            try:
                os.chmod(path, member.mode & 0o7777)
                src = archive.extractfile(member)
                shutil.copyfileobj(src, dst)
            except ARCHIVE_ERRORS as e:
                raise PluginInstallError(f"untarring file {path}: {e}") from e
        logger.debug(f"Extracted file {member.name} ({member.size} bytes)")

    def delete(self, descriptor: PluginDescriptor) -> None:
        """
        Remove a plugin and everything in its directory.

        Deleting a plugin that is not installed is not an error.
        """
        plugin_dir = descriptor.dir_path(self.plugin_dir)
        try:
            shutil.rmtree(plugin_dir)
        except FileNotFoundError:
            logger.debug(f"Plugin {descriptor} not installed; nothing to delete")
            return
        except NotADirectoryError:
            os.remove(plugin_dir)
        logger.info(f"Deleted plugin {descriptor} from {plugin_dir}")
