"""
liveload configuration module.
"""

from .schema import GeneralConfig, LiveloadSettings, LoaderConfig, XHRSettings
from .xdg import (
    ensure_directories,
    get_config_file_path,
    get_liveload_cache_dir,
    get_liveload_config_dir,
    get_plugin_dir,
    get_xdg_cache_home,
    get_xdg_config_home,
)

__all__ = [
    # Schemas
    "GeneralConfig",
    "LiveloadSettings",
    "LoaderConfig",
    "XHRSettings",
    # XDG
    "ensure_directories",
    "get_config_file_path",
    "get_liveload_cache_dir",
    "get_liveload_config_dir",
    "get_plugin_dir",
    "get_xdg_cache_home",
    "get_xdg_config_home",
]
