"""
Tests for plugin archive installation and deletion.
"""

import io
import os
import stat

import pytest

from plugin_cache.plugin_info import PluginDescriptor
from plugin_cache.plugin_installer import PluginInstallError, PluginInstaller, UnsupportedEntryError
from plugin_cache.plugin_metadata import get_plugin_size
from plugin_cache.plugin_scanner import PluginScanner

AWS = PluginDescriptor(kind="resource", name="aws", version="1.0.0")


class TestInstall:
    """Test PluginInstaller.install."""

    def test_install_directory_and_file(self, temp_plugin_dir, plugin_tarball):
        tarball = plugin_tarball([
            ("dir", "bin"),
            ("file", "bin/pulumi-resource-aws", b"x" * 100, 0o755),
        ])

        plugin_dir = PluginInstaller(temp_plugin_dir).install(AWS, tarball)

        assert plugin_dir == temp_plugin_dir / "resource-aws-v1.0.0"
        assert (plugin_dir / "bin" / "pulumi-resource-aws").read_bytes() == b"x" * 100
        assert get_plugin_size(plugin_dir) == 100
        assert PluginScanner(temp_plugin_dir).has_plugin(AWS)

    def test_install_creates_missing_parents(self, temp_plugin_dir, plugin_tarball):
        tarball = plugin_tarball([("file", "lib/nested/data.json", b"{}")])
        plugin_dir = PluginInstaller(temp_plugin_dir).install(AWS, tarball)
        assert (plugin_dir / "lib" / "nested" / "data.json").read_bytes() == b"{}"

    def test_install_dot_directory_entry(self, temp_plugin_dir, plugin_tarball):
        tarball = plugin_tarball([("dir", "."), ("file", "./README", b"hello")])
        plugin_dir = PluginInstaller(temp_plugin_dir).install(AWS, tarball)
        assert (plugin_dir / "README").read_bytes() == b"hello"

    def test_existing_directory_entry_is_fine(self, temp_plugin_dir, plugin_tarball):
        (temp_plugin_dir / AWS.dir_name / "bin").mkdir(parents=True)
        tarball = plugin_tarball([("dir", "bin"), ("file", "bin/tool", b"1")])
        plugin_dir = PluginInstaller(temp_plugin_dir).install(AWS, tarball)
        assert (plugin_dir / "bin" / "tool").read_bytes() == b"1"

    @pytest.mark.posix
    def test_permissions(self, temp_plugin_dir, plugin_tarball):
        tarball = plugin_tarball([
            ("file", "pulumi-resource-aws", b"#!/bin/sh\n", 0o755),
            ("file", "data.txt", b"data", 0o600),
        ])

        plugin_dir = PluginInstaller(temp_plugin_dir).install(AWS, tarball)

        assert stat.S_IMODE(os.stat(plugin_dir).st_mode) == 0o700
        assert stat.S_IMODE(os.stat(plugin_dir / "pulumi-resource-aws").st_mode) == 0o755
        assert stat.S_IMODE(os.stat(plugin_dir / "data.txt").st_mode) == 0o600

    def test_overwrite_does_not_truncate(self, temp_plugin_dir, plugin_tarball):
        plugin_dir = temp_plugin_dir / AWS.dir_name
        plugin_dir.mkdir(parents=True)
        (plugin_dir / "data").write_bytes(b"0123456789")

        PluginInstaller(temp_plugin_dir).install(AWS, plugin_tarball([("file", "data", b"abc")]))

        assert (plugin_dir / "data").read_bytes() == b"abc3456789"

    def test_stream_closed_on_success(self, temp_plugin_dir, plugin_tarball):
        tarball = plugin_tarball([("file", "a", b"a")])
        PluginInstaller(temp_plugin_dir).install(AWS, tarball)
        assert tarball.closed

    def test_symlink_entry_rejected(self, temp_plugin_dir, plugin_tarball):
        tarball = plugin_tarball([
            ("file", "pulumi-resource-aws", b"x" * 10),
            ("symlink", "link", "pulumi-resource-aws"),
            ("file", "after", b"never written"),
        ])

        with pytest.raises(UnsupportedEntryError, match="link"):
            PluginInstaller(temp_plugin_dir).install(AWS, tarball)

        plugin_dir = temp_plugin_dir / AWS.dir_name
        # No rollback: entries before the failure stay on disk.
        assert (plugin_dir / "pulumi-resource-aws").exists()
        assert not (plugin_dir / "link").exists()
        assert not (plugin_dir / "after").exists()
        assert tarball.closed

    def test_unsupported_entry_is_install_error(self):
        assert issubclass(UnsupportedEntryError, PluginInstallError)

    def test_not_gzip(self, temp_plugin_dir):
        stream = io.BytesIO(b"this is not a gzip stream")
        with pytest.raises(PluginInstallError):
            PluginInstaller(temp_plugin_dir).install(AWS, stream)
        assert stream.closed

    def test_truncated_archive(self, temp_plugin_dir, plugin_tarball):
        data = plugin_tarball([("file", "big", os.urandom(64 * 1024))]).getvalue()
        stream = io.BytesIO(data[: len(data) // 2])
        with pytest.raises(PluginInstallError):
            PluginInstaller(temp_plugin_dir).install(AWS, stream)
        assert stream.closed

    def test_path_traversal_rejected(self, temp_plugin_dir, plugin_tarball):
        tarball = plugin_tarball([("file", "../escaped", b"evil")])
        with pytest.raises(PluginInstallError, match="escapes"):
            PluginInstaller(temp_plugin_dir).install(AWS, tarball)
        assert not (temp_plugin_dir / "escaped").exists()

    def test_absolute_path_rejected(self, temp_plugin_dir, plugin_tarball, tmp_path):
        target = tmp_path / "absolute-target"
        tarball = plugin_tarball([("file", str(target), b"evil")])
        with pytest.raises(PluginInstallError):
            PluginInstaller(temp_plugin_dir).install(AWS, tarball)
        assert not target.exists()


class TestDelete:
    """Test PluginInstaller.delete."""

    def test_delete_installed(self, temp_plugin_dir, plugin_tarball):
        installer = PluginInstaller(temp_plugin_dir)
        installer.install(AWS, plugin_tarball([("dir", "bin"), ("file", "bin/x", b"x")]))

        installer.delete(AWS)

        assert not (temp_plugin_dir / AWS.dir_name).exists()
        assert not PluginScanner(temp_plugin_dir).has_plugin(AWS)

    def test_delete_missing_is_not_an_error(self, temp_plugin_dir):
        PluginInstaller(temp_plugin_dir).delete(AWS)

    def test_delete_leaves_other_versions(self, temp_plugin_dir, plugin_dirs):
        plugin_dirs(temp_plugin_dir, "resource-aws-v1.0.0", "resource-aws-v2.0.0")
        PluginInstaller(temp_plugin_dir).delete(AWS)
        assert [p.descriptor.dir_name for p in PluginScanner(temp_plugin_dir).list_plugins()] == [
            "resource-aws-v2.0.0"
        ]

    def test_delete_stray_file(self, temp_plugin_dir):
        temp_plugin_dir.mkdir(parents=True)
        stray = temp_plugin_dir / AWS.dir_name
        stray.write_text("not a plugin directory")

        PluginInstaller(temp_plugin_dir).delete(AWS)

        assert not stray.exists()
