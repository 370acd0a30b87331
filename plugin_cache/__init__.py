"""
Plugin cache for externally executed plugins.

Discovers, installs and resolves versioned plugin executables (language
hosts, resource providers, analyzers) kept under a per-user cache root.
"""

from .plugin_config import (
    ConfigurationError,
    PluginCacheConfig,
    PluginDirError,
    get_plugin_dir,
    load_config,
    setup_logging,
)
from .plugin_info import (
    InvalidPluginError,
    PluginCacheError,
    PluginDescriptor,
    PluginKind,
    PluginRecord,
    is_plugin_kind,
    parse_plugin_dir,
)
from .plugin_installer import PluginInstallError, PluginInstaller, UnsupportedEntryError
from .plugin_manager import PluginManager
from .plugin_metadata import PluginMetadata, get_plugin_size, probe_plugin_metadata
from .plugin_resolver import PluginResolver, select_plugin
from .plugin_scanner import PluginScanner
from .plugin_version import SemanticVersion

__version__ = "0.1.0"
