"""
Plugin loader: queues plugin files, fetches them and activates them.

Transfers run concurrently up to ``max_parallel``; activation of each file
runs once, to completion, on the event loop thread.
"""

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config.schema import LiveloadSettings, XHRSettings
from ..logging_config import get_logger
from .activation import Activator, ExtensionActivator, FileActivator, SourceActivator
from .errors import ConfigurationError, LoaderError
from .file import FileState, PluginFile
from .file_config import DEFAULT_EXTENSION
from .manager import PluginManager, get_plugin_manager
from .namespace import PluginNamespace
from .transport import HttpTransport, Transport

logger = get_logger(__name__)


@dataclass
class LoadResult:
    """Outcome of a loader run."""

    complete: list[str] = field(default_factory=list)
    failed: dict[str, LoaderError | None] = field(default_factory=dict)
    destroyed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class PluginLoader:
    """
    Queue driver for plugin files.

    Owns the plugin namespace and hands files the registry, activator and
    transport they need.
    """

    def __init__(
        self,
        manager: PluginManager | None = None,
        namespace: PluginNamespace | None = None,
        transport: Transport | None = None,
        activator: Activator | None = None,
        base_url: str = "",
        path: str = "",
        extension: str = DEFAULT_EXTENSION,
        xhr: XHRSettings | None = None,
        max_parallel: int = 4,
    ) -> None:
        """
        Initialize plugin loader.

        Args:
            manager: Plugin registry (uses global if None)
            namespace: Namespace activated plugins are bound in
            transport: Fetch collaborator (HttpTransport if None)
            activator: Payload activator (SourceActivator if None)
            base_url: Prefix for relative URLs
            path: Prefix for relative URLs, after base_url
            extension: Default extension for derived URLs
            xhr: Default transfer options
            max_parallel: Maximum concurrent transfers
        """
        self.manager = manager or get_plugin_manager()
        self.namespace = namespace if namespace is not None else PluginNamespace()
        self.transport = transport or HttpTransport()
        self.extensions = ExtensionActivator(self.namespace, self.manager, activator or SourceActivator())

        self.base_url = base_url
        self.path = path
        self.extension = extension
        self.xhr = xhr or XHRSettings()
        self.max_parallel = max_parallel

        self.queue: dict[str, PluginFile] = {}
        self.inflight: dict[str, PluginFile] = {}
        self.complete: dict[str, PluginFile] = {}
        self.failed: dict[str, PluginFile] = {}
        self.destroyed: dict[str, PluginFile] = {}

        self._transfers: dict[str, asyncio.Future] = {}

        logger.debug(f"PluginLoader: base_url={base_url!r} path={path!r} max_parallel={max_parallel}")

    @classmethod
    def from_settings(
        cls,
        settings: LiveloadSettings,
        manager: PluginManager | None = None,
        **kwargs: Any,
    ) -> "PluginLoader":
        """
        Build a loader from LiveloadSettings.

        Args:
            settings: Loaded settings
            manager: Plugin registry (uses global if None)
            **kwargs: Overrides passed to the constructor

        Returns:
            PluginLoader
        """
        loader_config = settings.loader

        if "activator" not in kwargs and loader_config.activation == "file":
            kwargs["activator"] = FileActivator()

        options: dict[str, Any] = {
            "base_url": loader_config.base_url,
            "path": loader_config.path,
            "extension": loader_config.extension,
            "xhr": settings.xhr,
            "max_parallel": loader_config.max_parallel,
        }
        options.update(kwargs)

        return cls(manager=manager, **options)

    def plugin(
        self,
        key: Any,
        url: Any = None,
        xhr_settings: XHRSettings | dict[str, Any] | None = None,
    ) -> "PluginLoader":
        """
        Queue a plugin file, or a list of plugin file configs.

        Args:
            key: Key, config record, or list of config records
            url: Locator or in-process plugin (single form only)
            xhr_settings: Transfer options (single form only)

        Returns:
            This loader

        Raises:
            ConfigurationError: If a config is invalid or a key is already queued
        """
        if isinstance(key, list | tuple):
            for config in key:
                self.add_file(PluginFile(self, config))
        else:
            self.add_file(PluginFile(self, key, url, xhr_settings))

        return self

    def keys(self) -> set[str]:
        """All keys known to this loader."""
        return set(self.queue) | set(self.inflight) | set(self.complete) | set(self.failed)

    def add_file(self, file: PluginFile) -> None:
        """
        Add a plugin file.

        Files that already finished during construction (in-process plugins)
        go straight to the results.

        Raises:
            ConfigurationError: If the key is already in use
        """
        if file.key in self.keys():
            raise ConfigurationError("key already in use by this loader", key=file.key)

        # A destroyed key may be queued again
        self.destroyed.pop(file.key, None)

        if file.state == FileState.COMPLETE:
            self.complete[file.key] = file
            self.manager.execute_hooks("file_complete", file)
        elif file.state == FileState.ERRORED:
            self.failed[file.key] = file
            self.manager.execute_hooks("file_error", file)
        else:
            self.queue[file.key] = file
            logger.debug(f"Queued plugin file: {file.key} ({file.src})")

    def next_file(self, file: PluginFile, success: bool) -> None:
        """
        Transfer finished callback from a plugin file.

        Args:
            file: The file whose transfer ended
            success: Whether a payload was received
        """
        future = self._transfers.pop(file.key, None)

        if future is not None and not future.done():
            future.set_result(success)

        if not success:
            self._finish(file)

    def file_process_complete(self, file: PluginFile) -> None:
        """Processing finished callback from a plugin file."""
        self._finish(file)

    def file_destroyed(self, file: PluginFile) -> None:
        """
        Destroy callback from a plugin file.

        Drops a queued or in-flight file and releases a run waiting on its
        transfer. Files this loader is not tracking are ignored.
        """
        if self.queue.get(file.key) is not file and self.inflight.get(file.key) is not file:
            return

        self.queue.pop(file.key, None)
        self.inflight.pop(file.key, None)
        self.destroyed[file.key] = file

        future = self._transfers.pop(file.key, None)

        if future is not None and not future.done():
            future.set_result(False)

        self.manager.execute_hooks("file_destroyed", file)

    def _finish(self, file: PluginFile) -> None:
        self.inflight.pop(file.key, None)

        if file.state == FileState.COMPLETE:
            self.complete[file.key] = file
            self.manager.execute_hooks("file_complete", file)
        elif file.state == FileState.ERRORED:
            self.failed[file.key] = file
            self.manager.execute_hooks("file_error", file)

    async def _load_file(self, file: PluginFile, semaphore: asyncio.Semaphore) -> None:
        async with semaphore:
            if file.state == FileState.DESTROYED:
                return

            future = asyncio.get_running_loop().create_future()
            self._transfers[file.key] = future
            self.queue.pop(file.key, None)
            self.inflight[file.key] = file

            file.start_transfer()
            success = await future

        if success and file.state == FileState.LOADING:
            file.process()

    async def start(self) -> LoadResult:
        """
        Load every queued file.

        Returns:
            LoadResult for all files this loader has seen
        """
        files = list(self.queue.values())

        if files:
            logger.info(f"Loading {len(files)} plugin file(s)")

            semaphore = asyncio.Semaphore(self.max_parallel)
            await asyncio.gather(*(self._load_file(file, semaphore) for file in files))

        result = LoadResult(
            complete=list(self.complete),
            failed={key: file.error for key, file in self.failed.items()},
            destroyed=list(self.destroyed),
        )

        logger.info(f"Plugins loaded: {len(result.complete)} complete, {len(result.failed)} failed")

        return result

    def cancel(self) -> int:
        """
        Destroy every queued and in-flight file.

        Returns:
            Number of files destroyed
        """
        files = list(self.queue.values()) + list(self.inflight.values())

        for file in files:
            file.destroy()

        if files:
            logger.info(f"Cancelled {len(files)} plugin file(s)")

        return len(files)

    def discover_plugins(self, plugin_dir: Path) -> list[dict[str, Any]]:
        """
        Discover plugin files in a local directory.

        Args:
            plugin_dir: Directory to scan

        Returns:
            Config records (key = file or package name, url = path)
        """
        if not plugin_dir.exists():
            return []

        configs = []

        # Find all .py files
        for py_file in sorted(plugin_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue  # Skip private files

            configs.append({"key": py_file.stem, "url": str(py_file.resolve())})

        # Find plugin packages
        for pkg_dir in sorted(plugin_dir.iterdir()):
            if pkg_dir.is_dir() and not pkg_dir.name.startswith(("_", ".")):
                init_file = pkg_dir / "__init__.py"
                if init_file.exists():
                    configs.append({"key": pkg_dir.name, "url": str(init_file.resolve())})

        logger.debug(f"Discovered {len(configs)} plugin files in {plugin_dir}")

        return configs

    def load_directory(self, plugin_dir: Path) -> "PluginLoader":
        """Queue every plugin discovered in plugin_dir."""
        return self.plugin(self.discover_plugins(plugin_dir))


def load_plugins(
    configs: Iterable[Mapping[str, Any]] | Mapping[str, Any],
    settings: LiveloadSettings | None = None,
    manager: PluginManager | None = None,
) -> LoadResult:
    """
    Load plugin configs with a loader built from settings.

    Runs its own event loop; use PluginLoader.start from async code.

    Args:
        configs: One config record or a list of them
        settings: Settings (loaded from config files if None)
        manager: Plugin registry (uses global if None)

    Returns:
        LoadResult
    """
    loader = PluginLoader.from_settings(settings or LiveloadSettings(), manager=manager)
    loader.plugin(list(configs) if not isinstance(configs, Mapping) else configs)

    return asyncio.run(loader.start())
