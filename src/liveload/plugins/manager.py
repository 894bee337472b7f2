"""
Plugin registry for liveload.

Activated plugins announce themselves here from their ``register(manager)``
entry point.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..logging_config import get_logger

logger = get_logger(__name__)


class PluginType(Enum):
    """Plugin types."""

    GLOBAL = "global"  # One shared instance for the whole host
    SCOPED = "scoped"  # Instantiated per consumer


@dataclass
class Plugin:
    """
    Registry entry.

    Holds the registered plugin object (class, function or instance) with
    its metadata.
    """

    name: str
    plugin: Any
    plugin_type: PluginType = PluginType.GLOBAL
    version: str = "0.1.0"
    description: str = "No description"
    config: dict[str, Any] = field(default_factory=dict)
    mapping: str | None = None  # Attribute name consumers expose it under
    enabled: bool = True


class PluginManager:
    """
    Registry of active plugins.

    Handles registration, lookup and lifecycle hooks.
    """

    def __init__(self) -> None:
        """Initialize plugin manager."""
        self.plugins: dict[str, Plugin] = {}
        self.hooks: dict[str, list[Callable]] = {}

        logger.debug("PluginManager initialized")

    def register(
        self,
        name: str,
        plugin: Any,
        plugin_type: PluginType | str = PluginType.GLOBAL,
        mapping: str | None = None,
        **metadata: Any,
    ) -> Plugin:
        """
        Register a plugin object under a name.

        This is the call loaded plugins make from their ``register`` entry point.

        Args:
            name: Registry name
            plugin: Plugin class, function or instance
            plugin_type: Plugin type (enum or its value)
            mapping: Optional attribute name for consumers
            **metadata: version, description, config

        Returns:
            The registry entry
        """
        entry = Plugin(
            name=name,
            plugin=plugin,
            plugin_type=PluginType(plugin_type),
            mapping=mapping,
            version=metadata.get("version", "0.1.0"),
            description=metadata.get("description", "No description"),
            config=metadata.get("config", {}),
        )

        self.register_plugin(entry)

        return entry

    def register_plugin(self, plugin: Plugin) -> None:
        """
        Register a plugin.

        Args:
            plugin: Plugin to register
        """
        if plugin.name in self.plugins:
            logger.warning(f"Plugin {plugin.name} already registered, overwriting")

        self.plugins[plugin.name] = plugin
        logger.info(f"Registered plugin: {plugin.name} ({plugin.plugin_type.value})")

        self.execute_hooks("plugin_registered", plugin)

    def unregister_plugin(self, name: str) -> bool:
        """
        Unregister a plugin.

        Args:
            name: Plugin name

        Returns:
            True if unregistered
        """
        plugin = self.plugins.pop(name, None)

        if plugin is None:
            return False

        logger.info(f"Unregistered plugin: {name}")
        self.execute_hooks("plugin_unregistered", plugin)

        return True

    def get_plugin(self, name: str) -> Plugin | None:
        """
        Get plugin by name.

        Args:
            name: Plugin name

        Returns:
            Plugin or None
        """
        return self.plugins.get(name)

    def list_plugins(self, plugin_type: PluginType | None = None) -> list[Plugin]:
        """
        List all plugins.

        Args:
            plugin_type: Optional type filter

        Returns:
            List of plugins
        """
        plugins = list(self.plugins.values())

        if plugin_type:
            plugins = [p for p in plugins if p.plugin_type == plugin_type]

        return plugins

    def enable_plugin(self, name: str) -> bool:
        """Enable a plugin. Returns False if unknown."""
        plugin = self.get_plugin(name)

        if plugin is None:
            return False

        plugin.enabled = True
        logger.info(f"Enabled plugin: {name}")

        return True

    def disable_plugin(self, name: str) -> bool:
        """Disable a plugin. Returns False if unknown."""
        plugin = self.get_plugin(name)

        if plugin is None:
            return False

        plugin.enabled = False
        logger.info(f"Disabled plugin: {name}")

        return True

    def register_hook(self, hook_name: str, callback: Callable) -> None:
        """
        Register hook callback.

        Args:
            hook_name: Hook name (e.g., "plugin_registered", "file_error")
            callback: Callback function
        """
        self.hooks.setdefault(hook_name, []).append(callback)
        logger.debug(f"Registered hook: {hook_name}")

    def execute_hooks(self, hook_name: str, *args: Any, **kwargs: Any) -> list[Any]:
        """
        Execute all callbacks for a hook.

        A failing callback is logged and skipped.

        Returns:
            List of hook results
        """
        results = []

        for callback in self.hooks.get(hook_name, []):
            try:
                results.append(callback(*args, **kwargs))
            except Exception as e:
                logger.error(f"Hook {hook_name} callback failed: {e}")

        return results

    def get_stats(self) -> dict[str, Any]:
        """
        Get plugin statistics.

        Returns:
            Dict with plugin stats
        """
        return {
            "total_plugins": len(self.plugins),
            "enabled_plugins": sum(1 for p in self.plugins.values() if p.enabled),
            "disabled_plugins": sum(1 for p in self.plugins.values() if not p.enabled),
            "by_type": {
                ptype.value: sum(1 for p in self.plugins.values() if p.plugin_type == ptype)
                for ptype in PluginType
            },
            "total_hooks": len(self.hooks),
        }


# Global plugin manager
_plugin_manager: PluginManager | None = None


def get_plugin_manager() -> PluginManager:
    """
    Get global plugin manager instance.

    Returns:
        Global PluginManager
    """
    global _plugin_manager

    if _plugin_manager is None:
        _plugin_manager = PluginManager()

    return _plugin_manager
