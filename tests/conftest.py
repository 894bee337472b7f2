"""Shared fixtures for liveload tests."""

import asyncio

import pytest

from liveload.plugins.loader import PluginLoader
from liveload.plugins.manager import PluginManager
from liveload.plugins.transport import TransferHandle


class ManualTransport:
    """Transport that records fetches; tests complete them by hand."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def fetch(self, locator, options, on_complete) -> TransferHandle:
        handle = TransferHandle()
        self.calls.append((locator, options, on_complete, handle))
        return handle

    def succeed(self, payload, index: int = -1) -> None:
        self.calls[index][2](payload, None)

    def fail(self, error: BaseException, index: int = -1) -> None:
        self.calls[index][2](None, error)


class ImmediateTransport:
    """Transport answering from a dict on the next loop iteration."""

    def __init__(self, responses: dict) -> None:
        self.responses = responses
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    def fetch(self, locator, options, on_complete) -> TransferHandle:
        self.calls.append(locator)
        self.active += 1
        self.max_active = max(self.max_active, self.active)

        response = self.responses.get(locator, FileNotFoundError(locator))

        def deliver() -> None:
            self.active -= 1
            if isinstance(response, BaseException):
                on_complete(None, response)
            else:
                on_complete(response, None)

        asyncio.get_running_loop().call_soon(deliver)
        return TransferHandle()


def _plugin_source(key: str) -> str:
    """Source of a plugin class named after its key that counts register() calls."""
    return f"""
class {key}:
    calls = 0

    @classmethod
    def register(cls, manager):
        cls.calls += 1
        manager.register("{key}", cls)
"""


@pytest.fixture
def manager() -> PluginManager:
    return PluginManager()


@pytest.fixture
def transport() -> ManualTransport:
    return ManualTransport()


@pytest.fixture
def loader(manager: PluginManager, transport: ManualTransport) -> PluginLoader:
    return PluginLoader(manager=manager, transport=transport)


@pytest.fixture
def plugin_source():
    return _plugin_source


@pytest.fixture
def immediate_transport():
    return ImmediateTransport
