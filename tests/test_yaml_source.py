"""
Tests for YAML configuration source.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic_settings import BaseSettings

from liveload.config.yaml_source import XDGYamlSettingsSource, get_config_paths


@pytest.mark.unit
class TestGetConfigPaths:
    """Test config path resolution."""

    def test_finds_project_local_config(self, tmp_path: Path):
        """Test finds liveload.yaml in current directory."""
        config_file = tmp_path / "liveload.yaml"
        config_file.write_text("test: true")

        with patch("pathlib.Path.cwd", return_value=tmp_path):
            assert config_file in get_config_paths()

    def test_path_precedence(self, tmp_path: Path):
        """Test project files come before the user config."""
        (tmp_path / "liveload.yaml").write_text("a: 1")
        (tmp_path / "config.yaml").write_text("a: 2")
        user_dir = tmp_path / "xdg" / "liveload"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text("a: 3")

        with (
            patch("pathlib.Path.cwd", return_value=tmp_path),
            patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path / "xdg")}),
        ):
            paths = get_config_paths()

        assert paths == [tmp_path / "liveload.yaml", tmp_path / "config.yaml", user_dir / "config.yaml"]


@pytest.mark.unit
class TestXDGYamlSettingsSource:
    """Test XDG YAML settings source."""

    def test_deep_merge(self):
        """Test deep merge of nested dicts."""
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        update = {"b": {"c": 99, "e": 4}, "f": 5}

        result = XDGYamlSettingsSource._deep_merge(base, update)

        assert result["b"]["c"] == 99  # Updated
        assert result["b"]["d"] == 3  # Preserved
        assert result["b"]["e"] == 4  # Added
        assert result["f"] == 5  # New top-level
        assert base["b"]["c"] == 2  # Input untouched

    def test_merges_config_files(self, tmp_path: Path):
        """Test higher-precedence files win."""

        class TestSettings(BaseSettings):
            test_value: str | None = None

        (tmp_path / "config.yaml").write_text("test_value: from_config\nnested:\n  a: 1\n  b: 1\n")
        (tmp_path / "test-app.yaml").write_text("test_value: from_app\nother_value: 123\nnested:\n  b: 2\n")

        with (
            patch("pathlib.Path.cwd", return_value=tmp_path),
            patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path / "none")}),
        ):
            data = XDGYamlSettingsSource(TestSettings, "test-app")()

        assert data["test_value"] == "from_app"
        assert data["other_value"] == 123
        assert data["nested"] == {"a": 1, "b": 2}

    def test_handles_empty_yaml_file(self, tmp_path: Path):
        """Test empty and non-mapping YAML files are ignored."""

        class TestSettings(BaseSettings):
            pass

        (tmp_path / "test-app.yaml").write_text("")
        (tmp_path / "config.yaml").write_text("- just\n- a list\n")

        with (
            patch("pathlib.Path.cwd", return_value=tmp_path),
            patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path / "none")}),
        ):
            source = XDGYamlSettingsSource(TestSettings, "test-app")

        assert source() == {}
        assert source.app_name == "test-app"
