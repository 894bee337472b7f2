"""
Configuration schema for liveload.

All configuration is defined in a single config.yaml file with multiple sections.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .xdg import get_liveload_config_dir
from .yaml_source import XDGYamlSettingsSource

# ==============================================================================
# NESTED CONFIG MODELS (use BaseModel, not BaseSettings)
# ==============================================================================


class GeneralConfig(BaseModel):
    """General liveload settings."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False


class XHRSettings(BaseModel):
    """
    Transfer options forwarded to the transport.

    Accepts both snake_case and camelCase keys (``responseType``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    timeout: float | None = Field(default=30.0, ge=0.0)  # None or 0 disables
    headers: dict[str, str] = Field(default_factory=dict)
    username: str | None = Field(default=None, alias="user")
    password: str | None = None
    response_type: Literal["text", "bytes"] = Field(default="text", alias="responseType")


class LoaderConfig(BaseModel):
    """Plugin loader settings."""

    base_url: str = ""  # Prepended to relative URLs
    path: str = ""  # Prepended to relative URLs, after base_url
    extension: str = "js"
    max_parallel: int = Field(default=4, gt=0)
    plugin_dir: str | None = None  # Local directory scanned by `discover`
    activation: Literal["source", "file"] = "source"


# ==============================================================================
# MAIN SETTINGS CLASS
# ==============================================================================


class LiveloadSettings(BaseSettings):
    """
    Unified liveload configuration.

    Configuration precedence (highest to lowest):
    1. Explicit init arguments
    2. Environment variables (LIVELOAD_*)
    3. .env file
    4. YAML config files (project > user)
    5. Field defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="LIVELOAD_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    xhr: XHRSettings = Field(default_factory=XHRSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Customize settings sources to include YAML config files.

        Precedence order (highest to lowest):
        1. init_settings - Explicit arguments
        2. env_settings - Environment variables
        3. dotenv_settings - .env file
        4. XDGYamlSettingsSource - YAML config files
        5. file_secret_settings - Secrets directory
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            XDGYamlSettingsSource(settings_cls, app_name="liveload"),
            file_secret_settings,
        )

    @property
    def config_dir(self) -> Path:
        """Get configuration directory path."""
        return get_liveload_config_dir()

    @property
    def plugin_dir(self) -> Path:
        """Get the local plugin directory (configured or XDG default)."""
        if self.loader.plugin_dir:
            return Path(self.loader.plugin_dir).expanduser()
        return self.config_dir / "plugins"
