"""Configuration loaded from .routedoc.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from routedoc.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".routedoc.toml"
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "routedoc" / "config.toml"


class StoreSectionConfig(BaseModel):
    """[store] section."""

    backend: Literal["json", "memory"] = "json"
    directory: str = "./.routedoc"
    collection_key: str = "content"
    max_retries: int = Field(default=10, ge=0)


class AuthSectionConfig(BaseModel):
    """[auth] section."""

    secret: str = ""
    audience: str | None = None
    token_ttl_seconds: int = Field(default=3600, gt=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.secret)


class RoutedocConfig(BaseModel):
    """Top-level configuration."""

    store: StoreSectionConfig = Field(default_factory=StoreSectionConfig)
    auth: AuthSectionConfig = Field(default_factory=AuthSectionConfig)

    @property
    def store_path(self) -> Path:
        return Path(self.store.directory).expanduser()


def load_config(path: str | Path | None = None) -> RoutedocConfig:
    """Load configuration from a TOML file, then overlay env vars.

    Search order:
    1. Explicit path (if provided)
    2. .routedoc.toml in CWD
    3. ~/.config/routedoc/config.toml

    Raises:
        ConfigError: the file parsed but holds invalid values.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for candidate in (Path(".") / CONFIG_FILENAME, GLOBAL_CONFIG_PATH):
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break

    try:
        config = RoutedocConfig.model_validate(data) if data else RoutedocConfig()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    return _apply_env_vars(config)


def merge_cli_overrides(config: RoutedocConfig, **cli_kwargs: object) -> RoutedocConfig:
    """Overlay explicitly-set CLI flags (non-None values) onto the config."""
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "store_backend": ("store", "backend"),
        "store_dir": ("store", "directory"),
        "collection_key": ("store", "collection_key"),
        "secret": ("auth", "secret"),
        "audience": ("auth", "audience"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = value

    try:
        return RoutedocConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: RoutedocConfig) -> RoutedocConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "ROUTEDOC_STORE_BACKEND": ("store", "backend"),
        "ROUTEDOC_STORE_DIR": ("store", "directory"),
        "ROUTEDOC_COLLECTION_KEY": ("store", "collection_key"),
        "ROUTEDOC_AUTH_SECRET": ("auth", "secret"),
        "ROUTEDOC_AUTH_AUDIENCE": ("auth", "audience"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    try:
        return RoutedocConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid environment configuration: {exc}") from exc
