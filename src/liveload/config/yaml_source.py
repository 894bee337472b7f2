"""
YAML settings source for pydantic-settings.

Looks for config files in the project directory and the XDG config dir and
deep-merges them, highest precedence last.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from .xdg import get_xdg_config_home


def get_config_paths(app_name: str = "liveload") -> list[Path]:
    """
    Get existing config files in precedence order (highest first).

    Order:
    1. ./<app_name>.yaml
    2. ./config.yaml
    3. $XDG_CONFIG_HOME/<app_name>/config.yaml

    Args:
        app_name: Application name

    Returns:
        List of existing config file paths
    """
    cwd = Path.cwd()
    candidates = [
        cwd / f"{app_name}.yaml",
        cwd / "config.yaml",
        get_xdg_config_home() / app_name / "config.yaml",
    ]

    paths = []
    for candidate in candidates:
        try:
            if candidate.is_file():
                paths.append(candidate)
        except OSError:
            continue

    return paths


class XDGYamlSettingsSource(PydanticBaseSettingsSource):
    """
    Settings source reading YAML config files.

    Lower-precedence files are loaded first and overlaid by higher ones.
    """

    def __init__(self, settings_cls: type[BaseSettings], app_name: str = "liveload") -> None:
        super().__init__(settings_cls)
        self.app_name = app_name
        self._merged_data: dict[str, Any] = {}

        for path in reversed(get_config_paths(app_name)):
            self._merged_data = self._deep_merge(self._merged_data, self._load_file(path))

    @staticmethod
    def _load_file(path: Path) -> dict[str, Any]:
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            return {}

        return data if isinstance(data, dict) else {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
        """
        Recursively merge ``update`` into a copy of ``base``.

        Args:
            base: Lower precedence values
            update: Higher precedence values

        Returns:
            Merged dict
        """
        result = dict(base)

        for key, value in update.items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = XDGYamlSettingsSource._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._merged_data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._merged_data)
