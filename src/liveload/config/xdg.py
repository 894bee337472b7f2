"""
XDG Base Directory helpers.

Resolves where liveload keeps its config, cache and data files.
"""

import os
from pathlib import Path

APP_NAME = "liveload"


def get_xdg_config_home() -> Path:
    """Get XDG config home (``$XDG_CONFIG_HOME`` or ~/.config)."""
    value = os.environ.get("XDG_CONFIG_HOME")
    return Path(value) if value else Path.home() / ".config"


def get_xdg_cache_home() -> Path:
    """Get XDG cache home (``$XDG_CACHE_HOME`` or ~/.cache)."""
    value = os.environ.get("XDG_CACHE_HOME")
    return Path(value) if value else Path.home() / ".cache"


def get_liveload_config_dir() -> Path:
    """Get liveload config directory."""
    return get_xdg_config_home() / APP_NAME


def get_liveload_cache_dir() -> Path:
    """Get liveload cache directory."""
    return get_xdg_cache_home() / APP_NAME


def get_config_file_path() -> Path:
    """Get path of the user config file."""
    return get_liveload_config_dir() / "config.yaml"


def get_plugin_dir() -> Path:
    """Get default local plugin directory."""
    return get_liveload_config_dir() / "plugins"


def ensure_directories() -> dict[str, Path]:
    """
    Create liveload directories if missing.

    Returns:
        Dict of directory name to path
    """
    dirs = {
        "config": get_liveload_config_dir(),
        "cache": get_liveload_cache_dir(),
        "plugins": get_plugin_dir(),
    }

    for path in dirs.values():
        path.mkdir(parents=True, exist_ok=True)

    return dirs
