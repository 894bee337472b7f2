"""
Plugin namespace.

Owned mapping that makes activated plugins addressable by key.
"""

import threading
from collections.abc import Iterator
from typing import Any

from ..logging_config import get_logger
from .errors import NamespaceCollisionError

logger = get_logger(__name__)


class PluginNamespace:
    """
    Key to value mapping for activated plugins.

    A slot is written once; binding a different object to an occupied slot
    raises NamespaceCollisionError.
    """

    def __init__(self) -> None:
        self._slots: dict[str, Any] = {}
        self._lock = threading.Lock()

    def bind(self, key: str, value: Any) -> None:
        """
        Bind value under key.

        Args:
            key: Slot name
            value: Activated plugin value

        Raises:
            NamespaceCollisionError: If the slot holds a different object
        """
        with self._lock:
            current = self._slots.get(key)

            if current is not None and current is not value:
                raise NamespaceCollisionError(
                    f"namespace slot already bound to {type(current).__name__}",
                    key=key,
                )

            self._slots[key] = value

        logger.debug(f"Bound namespace slot: {key}")

    def unbind(self, key: str) -> bool:
        """
        Remove a slot.

        Returns:
            True if the slot existed
        """
        with self._lock:
            removed = self._slots.pop(key, None) is not None

        if removed:
            logger.debug(f"Unbound namespace slot: {key}")

        return removed

    def get(self, key: str, default: Any = None) -> Any:
        """Get the value bound under key."""
        return self._slots.get(key, default)

    def keys(self) -> list[str]:
        """List bound keys."""
        return list(self._slots)

    def __getitem__(self, key: str) -> Any:
        return self._slots[key]

    def __contains__(self, key: object) -> bool:
        return key in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._slots))

    def __len__(self) -> int:
        return len(self._slots)
