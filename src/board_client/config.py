"""
Configuration management for the board client.

Loads configuration from YAML with no defaults for the required sections.
Every required value must be explicitly specified or loading fails.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict

CONFIG_ENV_VAR = "BOARD_CLIENT_CONFIG_PATH"
DEFAULT_CONFIG_FILENAME = "config.yaml"

WriteFailurePolicy = Literal["keep", "rollback"]


class ServiceConfig(BaseModel):
    """Client identity configuration."""

    model_config = ConfigDict(extra="forbid")
    name: str
    version: str


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")
    level: str
    directory: str | None = None


class ApiConfig(BaseModel):
    """Board REST backend connection configuration."""

    model_config = ConfigDict(extra="forbid")
    base_url: str
    timeout_seconds: int


class SyncConfig(BaseModel):
    """How local optimistic writes are reconciled with the backend."""

    model_config = ConfigDict(extra="forbid")
    on_write_failure: WriteFailurePolicy
    demo_fallback: bool


class DataConfig(BaseModel):
    """Local file locations."""

    model_config = ConfigDict(extra="forbid")
    ownership_path: str
    owner_email: str | None = None


class Settings(BaseModel):
    """
    Root configuration container.

    All sections are REQUIRED. Missing sections fail validation.
    """

    model_config = ConfigDict(extra="forbid")
    service: ServiceConfig
    logging: LoggingConfig
    api: ApiConfig
    sync: SyncConfig
    data: DataConfig


def get_config_path() -> Path:
    """Determine the configuration file path.

    Uses the BOARD_CLIENT_CONFIG_PATH env var when set, otherwise
    ``config.yaml`` in the current working directory.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILENAME


def load_settings(config_path: Path | None = None) -> Settings:
    """Load and validate Settings from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not hold a YAML mapping.
        pydantic.ValidationError: If a section is missing or malformed.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    raw = yaml.safe_load(config_path.read_text())
    if not isinstance(raw, dict):
        msg = f"Invalid config file: {config_path}"
        raise ValueError(msg)

    settings = Settings(**raw)

    ownership_path = Path(settings.data.ownership_path)
    if not ownership_path.is_absolute():
        resolved = (config_path.parent / ownership_path).resolve()
        settings = settings.model_copy(
            update={"data": settings.data.model_copy(update={"ownership_path": str(resolved)})},
        )
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings loaded from the default config path."""
    return load_settings()


def clear_settings_cache() -> None:
    """Forget cached settings. Used in testing."""
    get_settings.cache_clear()
