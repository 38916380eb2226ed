"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides helper functions to load the YAML file
holding the forecasting constants (base units, pricing mode, risk horizon).
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Business rules live in YAML; runtime artefacts (forecast records) in DATA_DIR
    config_dir: str = "configs"
    data_dir: str = "data"

    cors_origins: str = ""
    rate_limit_per_min: int = 60

    # Seed for the pseudo-random source; unset means a fresh draw per process
    random_seed: int | None = None


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> Dict[str, Any]:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def settings_section(settings: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a nested mapping from ``settings`` or an empty dict."""

    section = settings.get(name)
    return section if isinstance(section, dict) else {}
