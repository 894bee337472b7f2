"""
liveload: fetch plugin code at runtime and register it with a running host.
"""

from .plugins import (
    FileState,
    LoadResult,
    PluginFile,
    PluginLoader,
    PluginManager,
    PluginNamespace,
    get_plugin_manager,
    load_plugins,
)

__version__ = "0.1.0"

__all__ = [
    "FileState",
    "LoadResult",
    "PluginFile",
    "PluginLoader",
    "PluginManager",
    "PluginNamespace",
    "get_plugin_manager",
    "load_plugins",
]
