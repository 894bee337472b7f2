"""Tests for the plugin loader queue."""

import asyncio
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from liveload.config.schema import LiveloadSettings
from liveload.plugins.activation import FileActivator, SourceActivator
from liveload.plugins.errors import ActivationError, ConfigurationError, TransferError
from liveload.plugins.file import FileState
from liveload.plugins.loader import PluginLoader, load_plugins
from liveload.plugins.manager import PluginManager


@pytest.mark.unit
class TestPluginQueue:
    """Test queueing plugin files."""

    def test_batch_creates_independent_files(self, loader):
        """Test a list of N configs queues N files."""
        loader.plugin([{"key": "a"}, {"key": "b", "url": "lib/b.py"}, {"key": "c", "extension": "py"}])

        assert list(loader.queue) == ["a", "b", "c"]
        assert loader.queue["a"].url == "a.js"
        assert loader.queue["b"].url == "lib/b.py"
        assert loader.queue["c"].url == "c.py"
        assert all(f.state == FileState.PENDING for f in loader.queue.values())

    def test_plugin_returns_loader(self, loader):
        """Test plugin() is chainable."""
        assert loader.plugin("a").plugin("b") is loader
        assert set(loader.queue) == {"a", "b"}

    def test_duplicate_key_rejected(self, loader):
        """Test a key can only be queued once."""
        loader.plugin("a")

        with pytest.raises(ConfigurationError):
            loader.plugin("a", "elsewhere/a.py")

    def test_invalid_config_in_batch(self, loader):
        """Test an invalid config in a batch raises."""
        with pytest.raises(ConfigurationError):
            loader.plugin([{"key": "a"}, {"url": "no-key.py"}])

    def test_inline_plugin_goes_to_complete(self, loader, manager):
        """Test already-loaded plugins are complete on add."""
        hook = Mock()
        manager.register_hook("file_complete", hook)

        class Inline:
            @staticmethod
            def register(registry):
                registry.register("inline", Inline)

        loader.plugin("inline", Inline)

        assert "inline" in loader.complete
        assert "inline" not in loader.queue
        hook.assert_called_once_with(loader.complete["inline"])

    def test_duplicate_inline_plugin_not_registered(self, loader, manager):
        """Test a rejected in-process plugin neither registers nor binds its key."""
        calls = []

        class Inline:
            @staticmethod
            def register(registry):
                calls.append(registry)

        loader.plugin("dup")

        with pytest.raises(ConfigurationError):
            loader.plugin("dup", Inline)

        assert calls == []
        assert "dup" not in loader.namespace
        assert list(loader.queue) == ["dup"]

    def test_duplicate_inline_in_batch(self, loader):
        """Test a batch repeating an in-process key registers it once."""
        calls = []

        class Inline:
            @staticmethod
            def register(registry):
                calls.append(registry)

        with pytest.raises(ConfigurationError):
            loader.plugin([{"key": "inline", "url": Inline}, {"key": "inline", "url": Inline}])

        assert len(calls) == 1
        assert loader.namespace["inline"] is Inline


@pytest.mark.unit
class TestPluginLoaderStart:
    """Test loading queued files."""

    @pytest.mark.asyncio
    async def test_start_loads_all(self, manager, immediate_transport, plugin_source):
        """Test successful and failing files are reported separately."""
        transport = immediate_transport(
            {
                "fx1.js": plugin_source("fx1"),
                "plugins/fx2.min.js": ConnectionError("refused"),
            }
        )
        loader = PluginLoader(manager=manager, transport=transport)
        loader.plugin([{"key": "fx1"}, {"key": "fx2", "url": "plugins/fx2.min.js"}])

        result = await loader.start()

        assert result.complete == ["fx1"]
        assert list(result.failed) == ["fx2"]
        assert isinstance(result.failed["fx2"], TransferError)
        assert result.failed["fx2"].key == "fx2"
        assert result.ok is False
        assert manager.get_plugin("fx1") is not None
        assert loader.queue == {}
        assert loader.inflight == {}

    @pytest.mark.asyncio
    async def test_activation_error_reported(self, manager, immediate_transport):
        """Test activation failure does not affect other files."""
        transport = immediate_transport(
            {
                "good.js": "def register(manager):\n    manager.register('good', 1)\n",
                "bad.js": "raise RuntimeError('bad plugin')\n",
            }
        )
        loader = PluginLoader(manager=manager, transport=transport)
        loader.plugin([{"key": "good"}, {"key": "bad"}])

        result = await loader.start()

        assert result.complete == ["good"]
        assert result.failed["bad"].key == "bad"
        assert loader.failed["bad"].state == FileState.ERRORED

    @pytest.mark.asyncio
    async def test_max_parallel(self, manager, immediate_transport):
        """Test no more than max_parallel transfers are in flight."""
        responses = {f"p{i}.js": "def register(manager):\n    pass\n" for i in range(6)}
        transport = immediate_transport(responses)
        loader = PluginLoader(manager=manager, transport=transport, max_parallel=2)
        loader.plugin([{"key": f"p{i}"} for i in range(6)])

        result = await loader.start()

        assert len(result.complete) == 6
        assert transport.max_active <= 2
        assert len(transport.calls) == 6

    @pytest.mark.asyncio
    async def test_error_hook(self, manager, immediate_transport):
        """Test file_error hook fires for failed files."""
        hook = Mock()
        manager.register_hook("file_error", hook)

        loader = PluginLoader(manager=manager, transport=immediate_transport({}))
        loader.plugin("missing")

        await loader.start()

        hook.assert_called_once_with(loader.failed["missing"])

    @pytest.mark.asyncio
    async def test_cancel_in_flight(self, manager, transport):
        """Test cancel destroys in-flight files and ends the run."""
        loader = PluginLoader(manager=manager, transport=transport)
        loader.plugin([{"key": "a"}, {"key": "b"}])

        run = asyncio.create_task(loader.start())
        for _ in range(3):
            await asyncio.sleep(0)

        files = list(loader.inflight.values())
        assert len(files) == 2

        assert loader.cancel() == 2

        result = await run

        assert result.complete == []
        assert all(f.state == FileState.DESTROYED for f in files)
        assert all(call[3].cancelled for call in transport.calls)

    @pytest.mark.asyncio
    async def test_cancel_reaches_waiting_files(self, manager, transport):
        """Test cancel destroys files still waiting for a transfer slot."""
        loader = PluginLoader(manager=manager, transport=transport, max_parallel=1)
        loader.plugin([{"key": "a"}, {"key": "b"}])
        waiting = loader.queue["b"]

        run = asyncio.create_task(loader.start())
        for _ in range(3):
            await asyncio.sleep(0)

        assert list(loader.inflight) == ["a"]
        assert list(loader.queue) == ["b"]

        assert loader.cancel() == 2

        await run

        assert waiting.state == FileState.DESTROYED
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_destroy_single_file_in_flight(self, manager, transport, plugin_source):
        """Test destroying one file during a run lets the run finish."""
        hook = Mock()
        manager.register_hook("file_destroyed", hook)
        loader = PluginLoader(manager=manager, transport=transport)
        loader.plugin([{"key": "a"}, {"key": "b"}])

        run = asyncio.create_task(loader.start())
        for _ in range(3):
            await asyncio.sleep(0)

        file = loader.inflight["a"]
        file.destroy()
        transport.succeed(plugin_source("b"), index=1)

        done, _ = await asyncio.wait({run}, timeout=1)

        assert run in done
        result = run.result()
        assert result.destroyed == ["a"]
        assert result.complete == ["b"]
        assert loader.inflight == {}
        assert transport.calls[0][3].cancelled is True
        hook.assert_called_once_with(file)

    @pytest.mark.asyncio
    async def test_destroyed_key_can_be_queued_again(self, manager, immediate_transport, plugin_source):
        """Test a destroyed key is free for a new file."""
        loader = PluginLoader(manager=manager, transport=immediate_transport({"a.js": plugin_source("a")}))
        loader.plugin("a")
        loader.queue["a"].destroy()

        loader.plugin("a")
        result = await loader.start()

        assert result.complete == ["a"]
        assert result.destroyed == []

    @pytest.mark.asyncio
    async def test_register_lookup_error_fails_file(self, manager, immediate_transport):
        """Test a plugin whose register attribute raises ends up errored."""
        source = (
            "class _Plugin:\n"
            "    @property\n"
            "    def register(self):\n"
            "        raise RuntimeError('descriptor failed')\n"
            "\n"
            "odd = _Plugin()\n"
        )
        loader = PluginLoader(manager=manager, transport=immediate_transport({"odd.js": source}))
        loader.plugin("odd")

        result = await loader.start()

        assert isinstance(result.failed["odd"], ActivationError)
        assert isinstance(result.failed["odd"].cause, RuntimeError)
        assert loader.failed["odd"].state == FileState.ERRORED
        assert loader.inflight == {}

    @pytest.mark.asyncio
    async def test_start_with_empty_queue(self, loader):
        """Test start() with nothing queued."""
        result = await loader.start()

        assert result.complete == []
        assert result.failed == {}
        assert result.ok is True

    @pytest.mark.asyncio
    async def test_local_files_end_to_end(self, tmp_path: Path, manager):
        """Test loading plugins from disk with the default transport."""
        (tmp_path / "alpha.py").write_text("def register(manager):\n    manager.register('alpha', 'A')\n")

        loader = PluginLoader(manager=manager, path=f"{tmp_path}/", extension="py")
        loader.plugin("alpha")

        result = await loader.start()

        assert result.complete == ["alpha"]
        assert manager.get_plugin("alpha").plugin == "A"


@pytest.mark.unit
class TestPluginDiscovery:
    """Test local plugin directory discovery."""

    def test_discover_empty_dir(self, tmp_path: Path, loader):
        """Test discovering plugins in empty directory."""
        assert loader.discover_plugins(tmp_path) == []

    def test_discover_nonexistent_dir(self, tmp_path: Path, loader):
        """Test discovering plugins in non-existent directory."""
        assert loader.discover_plugins(tmp_path / "nonexistent") == []

    def test_discover_python_files(self, tmp_path: Path, loader):
        """Test discovering Python plugin files."""
        (tmp_path / "plugin1.py").write_text("# Plugin 1")
        (tmp_path / "plugin2.py").write_text("# Plugin 2")
        (tmp_path / "_private.py").write_text("# Should be skipped")

        configs = loader.discover_plugins(tmp_path)

        assert [c["key"] for c in configs] == ["plugin1", "plugin2"]
        assert configs[0]["url"] == str((tmp_path / "plugin1.py").resolve())

    def test_discover_packages(self, tmp_path: Path, loader):
        """Test discovering plugin packages."""
        pkg1 = tmp_path / "plugin_pkg1"
        pkg1.mkdir()
        (pkg1 / "__init__.py").write_text("# Plugin package 1")

        # Package without __init__.py should be skipped
        (tmp_path / "not_a_package").mkdir()

        # Hidden directories should be skipped
        hidden = tmp_path / ".hidden"
        hidden.mkdir()
        (hidden / "__init__.py").write_text("# Hidden")

        configs = loader.discover_plugins(tmp_path)

        assert configs == [{"key": "plugin_pkg1", "url": str((pkg1 / "__init__.py").resolve())}]

    @pytest.mark.asyncio
    async def test_load_directory(self, tmp_path: Path, manager):
        """Test loading every discovered plugin."""
        (tmp_path / "plugin1.py").write_text("def register(manager):\n    manager.register('plugin1', 1)\n")
        (tmp_path / "plugin2.py").write_text("def register(manager):\n    manager.register('plugin2', 2)\n")
        (tmp_path / "invalid.py").write_text("PLUGIN_NAME = 'invalid'\n")

        loader = PluginLoader(manager=manager)
        result = await loader.load_directory(tmp_path).start()

        assert sorted(result.complete) == ["plugin1", "plugin2"]
        assert list(result.failed) == ["invalid"]
        assert len(manager.plugins) == 2


@pytest.mark.unit
class TestLoaderFromSettings:
    """Test building loaders from settings."""

    def test_from_settings(self):
        """Test loader options come from settings."""
        settings = LiveloadSettings(
            loader={"base_url": "https://cdn.example.com/", "path": "p/", "extension": "py", "max_parallel": 7},
            xhr={"timeout": 5},
        )

        loader = PluginLoader.from_settings(settings, manager=PluginManager())

        assert loader.base_url == "https://cdn.example.com/"
        assert loader.path == "p/"
        assert loader.extension == "py"
        assert loader.max_parallel == 7
        assert loader.xhr.timeout == 5
        assert isinstance(loader.extensions.activator, SourceActivator)

    def test_from_settings_file_activation(self, tmp_path: Path):
        """Test activation: file selects FileActivator."""
        settings = LiveloadSettings(loader={"activation": "file"})

        with patch("liveload.plugins.activation.get_liveload_cache_dir", return_value=tmp_path):
            loader = PluginLoader.from_settings(settings, manager=PluginManager())

        assert isinstance(loader.extensions.activator, FileActivator)
        assert loader.extensions.activator.cache_dir == tmp_path / "plugins"

    def test_load_plugins(self, tmp_path: Path):
        """Test synchronous convenience function."""
        plugin = tmp_path / "gamma.py"
        plugin.write_text("def register(manager):\n    manager.register('gamma', 'G')\n")
        manager = PluginManager()

        result = load_plugins([{"key": "gamma", "url": str(plugin)}], settings=LiveloadSettings(), manager=manager)

        assert result.complete == ["gamma"]
        assert manager.get_plugin("gamma").plugin == "G"
