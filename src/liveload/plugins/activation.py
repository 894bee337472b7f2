"""
Plugin activation.

Materializes a fetched payload as a live Python module and hands the value
it exports to the plugin registry.

Activation contract for plugin code:
- After materialization exactly one value is exported under the file key:
  the module attribute named after the key, or else the module itself.
- That value exposes ``register(manager)``, called once with the
  PluginManager.

Plugin modules are not left in ``sys.modules``; the loader's
PluginNamespace is the only place activated plugins are published.
"""

import importlib.util
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import ModuleType
from typing import Any, Protocol

from ..config.xdg import get_liveload_cache_dir
from ..logging_config import get_logger
from .errors import ActivationError, NamespaceCollisionError
from .manager import PluginManager
from .namespace import PluginNamespace

logger = get_logger(__name__)

MODULE_PREFIX = "liveload_plugin_"


def _escape(match: re.Match) -> str:
    char = match.group()
    if char == "_":
        return "__"
    return f"_{ord(char):x}_"


def module_name_for(key: str) -> str:
    """
    Build the module name for a plugin key.

    Distinct keys always map to distinct names (``a-b`` -> ``a_2d_b``,
    ``a_b`` -> ``a__b``).
    """
    return MODULE_PREFIX + re.sub(r"_|\W", _escape, key)


def export_value(module: ModuleType, key: str) -> Any:
    """Get the value a plugin module exports under its key."""
    return getattr(module, key, module)


@contextmanager
def executing(module: ModuleType) -> Iterator[ModuleType]:
    """
    Expose module in sys.modules while its code runs.

    Whatever held the name before is put back afterwards, so another
    loader's module is never replaced.
    """
    name = module.__name__
    previous = sys.modules.get(name)
    sys.modules[name] = module

    try:
        yield module
    finally:
        if previous is None:
            sys.modules.pop(name, None)
        else:
            sys.modules[name] = previous


class Activator(Protocol):
    """Turns a raw payload into a live module."""

    def materialize(self, key: str, payload: str | bytes, origin: str | None = None) -> ModuleType: ...


class SourceActivator:
    """
    Executes the payload in a fresh in-memory module.
    """

    def materialize(self, key: str, payload: str | bytes, origin: str | None = None) -> ModuleType:
        module_name = module_name_for(key)

        spec = importlib.util.spec_from_loader(module_name, loader=None, origin=origin)
        module = importlib.util.module_from_spec(spec)
        code = compile(payload, origin or f"<plugin {key}>", "exec")

        with executing(module):
            exec(code, module.__dict__)

        logger.debug(f"Materialized plugin module in memory: {module_name}")

        return module


class FileActivator:
    """
    Writes the payload to the cache directory and imports it from there.

    Tracebacks from plugin code then point at a real file.
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        if cache_dir is None:
            cache_dir = get_liveload_cache_dir() / "plugins"

        self.cache_dir = cache_dir
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def materialize(self, key: str, payload: str | bytes, origin: str | None = None) -> ModuleType:
        module_name = module_name_for(key)
        plugin_file = self.cache_dir / f"{module_name}.py"

        if isinstance(payload, bytes):
            plugin_file.write_bytes(payload)
        else:
            plugin_file.write_text(payload, encoding="utf-8")

        spec = importlib.util.spec_from_file_location(module_name, plugin_file)

        if spec is None or spec.loader is None:
            raise ImportError(f"cannot create module spec for {plugin_file}")

        module = importlib.util.module_from_spec(spec)

        with executing(module):
            spec.loader.exec_module(module)

        logger.debug(f"Materialized plugin module from {plugin_file}")

        return module


class ExtensionActivator:
    """
    Binds activated values into the namespace and calls their register().

    The namespace write and the register() call happen together, once per key.
    """

    def __init__(
        self,
        namespace: PluginNamespace,
        manager: PluginManager,
        activator: Activator | None = None,
    ) -> None:
        self.namespace = namespace
        self.manager = manager
        self.activator = activator or SourceActivator()

    def materialize(self, key: str, payload: str | bytes, origin: str | None = None) -> Any:
        """
        Materialize a payload and return the value it exports under key.

        Raises:
            ActivationError: If executing the payload fails
        """
        try:
            module = self.activator.materialize(key, payload, origin)
        except Exception as e:
            raise ActivationError("failed to materialize plugin", key=key, cause=e) from e

        return export_value(module, key)

    def activate(self, key: str, value: Any) -> Any:
        """
        Bind value under key and call its register(manager).

        The slot is released again if register() raises.

        Args:
            key: Plugin key
            value: Activated value

        Returns:
            The value

        Raises:
            NamespaceCollisionError: If key is already bound, even to value itself
            ActivationError: If value has no register() or it raised
        """
        try:
            register = getattr(value, "register", None)
        except Exception as e:
            raise ActivationError("cannot read register()", key=key, cause=e) from e

        if not callable(register):
            raise ActivationError("activated value has no callable register()", key=key)

        if key in self.namespace:
            current = self.namespace.get(key)
            raise NamespaceCollisionError(
                f"namespace slot already bound to {type(current).__name__}",
                key=key,
            )

        self.namespace.bind(key, value)

        try:
            register(self.manager)
        except Exception as e:
            self.namespace.unbind(key)
            raise ActivationError("register() failed", key=key, cause=e) from e

        logger.debug(f"Activated plugin: {key}")

        return value
