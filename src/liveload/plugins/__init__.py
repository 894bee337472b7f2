"""
liveload plugin loading.
"""

from .activation import Activator, ExtensionActivator, FileActivator, SourceActivator
from .errors import (
    ActivationError,
    ConfigurationError,
    InvalidStateError,
    LoaderError,
    NamespaceCollisionError,
    TransferError,
)
from .file import FileState, PluginFile
from .file_config import PluginFileConfig, normalize_file_config
from .loader import LoadResult, PluginLoader, load_plugins
from .manager import Plugin, PluginManager, PluginType, get_plugin_manager
from .namespace import PluginNamespace
from .transport import HttpTransport, TransferHandle, Transport

__all__ = [
    "ActivationError",
    "Activator",
    "ConfigurationError",
    "ExtensionActivator",
    "FileActivator",
    "FileState",
    "HttpTransport",
    "InvalidStateError",
    "LoadResult",
    "LoaderError",
    "NamespaceCollisionError",
    "Plugin",
    "PluginFile",
    "PluginFileConfig",
    "PluginLoader",
    "PluginManager",
    "PluginNamespace",
    "PluginType",
    "SourceActivator",
    "TransferError",
    "TransferHandle",
    "Transport",
    "get_plugin_manager",
    "load_plugins",
    "normalize_file_config",
]
