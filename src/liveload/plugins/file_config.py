"""
Plugin file configuration normalization.

Turns the positional or record form of a plugin request into a
PluginFileConfig and derives URLs and transfer options from it.
"""

import inspect
import re
from collections.abc import Mapping
from types import ModuleType
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config.schema import XHRSettings
from .errors import ConfigurationError

DEFAULT_EXTENSION = "js"

# blob:, data:, file:, http(s)://, protocol-relative and rooted paths are used as is
_ABSOLUTE_URL = re.compile(r"^(?:blob:|data:|file:|https?://|//|/)", re.IGNORECASE)


class PluginFileConfig(BaseModel):
    """
    Configuration record for a single plugin file.

    ``url`` may also be an in-process class, function or module, in which case
    no transfer is needed.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", arbitrary_types_allowed=True)

    key: str
    url: Any = None
    extension: str = DEFAULT_EXTENSION
    xhr_settings: XHRSettings | None = Field(
        default=None,
        validation_alias=AliasChoices("xhrSettings", "xhr_settings", "transferOptions", "transfer_options"),
    )

    @field_validator("key")
    @classmethod
    def _key_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("key must be a non-empty string")
        return value

    @field_validator("extension")
    @classmethod
    def _strip_dot(cls, value: str) -> str:
        return value.lstrip(".") or DEFAULT_EXTENSION


def normalize_file_config(
    key: Any,
    url: Any = None,
    xhr_settings: XHRSettings | Mapping[str, Any] | None = None,
) -> PluginFileConfig:
    """
    Normalize positional arguments or a config record.

    Args:
        key: Key string, config mapping or PluginFileConfig
        url: Source locator or in-process plugin (positional form only)
        xhr_settings: Transfer options (positional form only)

    Returns:
        PluginFileConfig

    Raises:
        ConfigurationError: If the key is missing or invalid
    """
    if isinstance(key, PluginFileConfig):
        return key

    if isinstance(key, Mapping):
        data = dict(key)
    else:
        data = {"key": key, "url": url, "xhr_settings": xhr_settings}

    try:
        return PluginFileConfig.model_validate(data)
    except ValidationError as e:
        raw_key = data.get("key")
        raise ConfigurationError(
            "invalid plugin file configuration",
            key=raw_key if isinstance(raw_key, str) and raw_key else None,
            cause=e,
        ) from e


def derive_url(key: str, extension: str = DEFAULT_EXTENSION) -> str:
    """Derive the default locator, e.g. ``alien`` -> ``alien.js``."""
    return f"{key}.{extension}"


def resolve_url(url: str, base_url: str = "", path: str = "") -> str:
    """
    Resolve a relative locator against the loader's base URL and path.

    Args:
        url: Locator
        base_url: Loader base URL
        path: Loader path

    Returns:
        Resolved locator
    """
    if _ABSOLUTE_URL.match(url):
        return url

    return f"{base_url}{path}{url}"


def is_inline_plugin(value: Any) -> bool:
    """True if value is already-loaded code rather than a locator."""
    return inspect.isclass(value) or isinstance(value, ModuleType) or callable(value)


def merge_xhr_settings(
    defaults: XHRSettings | None,
    overrides: XHRSettings | Mapping[str, Any] | None,
) -> XHRSettings:
    """
    Overlay per-file transfer options on the loader defaults.

    Only fields the override explicitly sets replace defaults; headers merge.

    Args:
        defaults: Loader-wide settings
        overrides: Per-file settings

    Returns:
        New XHRSettings
    """
    base = defaults or XHRSettings()

    if overrides is None:
        return base.model_copy(deep=True)

    if not isinstance(overrides, XHRSettings):
        overrides = XHRSettings.model_validate(dict(overrides))

    update = overrides.model_dump(exclude_unset=True)
    update["headers"] = {**base.headers, **overrides.headers}

    return base.model_copy(update=update, deep=True)
