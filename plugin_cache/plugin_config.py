#!/usr/bin/env python3
"""
Configuration for the plugin cache.

Resolves the plugin cache root (home directory + bookkeeping directory +
plugin directory) from defaults, an optional YAML configuration file and
environment overrides, and sets up logging for the package.

Example configuration file:

    plugins:
      bookkeeping_dir: .pulumi
      plugin_dir_name: plugins
    logging:
      level: DEBUG
      format: json
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from .plugin_info import PluginCacheError

BOOKKEEPING_DIR = ".pulumi"
PLUGIN_DIR = "plugins"

PULUMI_HOME_ENV = "PULUMI_HOME"
PLUGIN_CACHE_DIR_ENV = "PLUGIN_CACHE_DIR"

LOGGER_NAME = "plugin_cache"


class ConfigurationError(PluginCacheError):
    """Configuration loading or validation failed."""
    pass


class PluginDirError(PluginCacheError):
    """The plugin cache root could not be determined."""
    pass


@dataclass
class PluginCacheConfig:
    """Settings that locate the plugin cache and control logging."""
    home_dir: Optional[Path] = None
    bookkeeping_dir: str = BOOKKEEPING_DIR
    plugin_dir_name: str = PLUGIN_DIR
    plugin_dir: Optional[Path] = None
    log_level: str = "WARNING"
    log_format: str = "text"


def load_config(config_path: Optional[Union[str, Path]] = None,
                environ: Optional[Dict[str, str]] = None) -> PluginCacheConfig:
    """
    Load plugin cache configuration.

    Args:
        config_path: Optional YAML configuration file
        environ: Environment to read overrides from (defaults to os.environ)

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    environ = os.environ if environ is None else environ
    config = PluginCacheConfig()

    if config_path is not None:
        data = _read_config_file(Path(config_path))

        plugins = data.get("plugins") or {}
        log_config = data.get("logging") or {}
        if not isinstance(plugins, dict) or not isinstance(log_config, dict):
            raise ConfigurationError(
                f"Invalid configuration in {config_path}: 'plugins' and 'logging' must be mappings")

        if plugins.get("home_dir"):
            config.home_dir = Path(plugins["home_dir"]).expanduser()
        if plugins.get("plugin_dir"):
            config.plugin_dir = Path(plugins["plugin_dir"]).expanduser()
        config.bookkeeping_dir = str(plugins.get("bookkeeping_dir", config.bookkeeping_dir))
        config.plugin_dir_name = str(plugins.get("plugin_dir_name", config.plugin_dir_name))
        config.log_level = str(log_config.get("level", config.log_level)).upper()
        config.log_format = str(log_config.get("format", config.log_format)).lower()

    if config.log_format not in ("text", "json"):
        raise ConfigurationError(f"Unsupported log format: {config.log_format}")
    if not isinstance(getattr(logging, config.log_level, None), int):
        raise ConfigurationError(f"Unsupported log level: {config.log_level}")

    # PULUMI_HOME names the bookkeeping directory itself.
    if environ.get(PULUMI_HOME_ENV):
        pulumi_home = Path(environ[PULUMI_HOME_ENV]).expanduser()
        config.home_dir = pulumi_home.parent
        config.bookkeeping_dir = pulumi_home.name
    if environ.get(PLUGIN_CACHE_DIR_ENV):
        config.plugin_dir = Path(environ[PLUGIN_CACHE_DIR_ENV]).expanduser()

    return config


def _read_config_file(config_path: Path) -> Dict:
    """Read and validate the top-level shape of a YAML configuration file."""
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML configuration: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    return data


def get_plugin_dir(config: Optional[PluginCacheConfig] = None) -> Path:
    """
    Get the directory in which plugins on the current machine are managed.

    Raises:
        PluginDirError: If the user's home directory cannot be determined
    """
    config = config or PluginCacheConfig()
    if config.plugin_dir is not None:
        return Path(config.plugin_dir).absolute()

    home_dir = config.home_dir
    if home_dir is None:
        try:
            home_dir = Path.home()
        except (RuntimeError, KeyError) as e:
            raise PluginDirError(f"getting user home directory: {e}") from e
        if str(home_dir) == "~":
            raise PluginDirError("getting user home directory: home directory is not set")

    return (Path(home_dir) / config.bookkeeping_dir / config.plugin_dir_name).absolute()


def setup_logging(config: Optional[PluginCacheConfig] = None) -> logging.Logger:
    """Set up the package logger according to the configuration."""
    config = config or PluginCacheConfig()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.log_level.upper()))

    # Create handler if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler()

        if config.log_format == "json":
            formatter = logging.Formatter(
                '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                '"component": "plugin-cache", "message": "%(message)s"}'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s [%(levelname)s] plugin-cache: %(message)s'
            )

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
