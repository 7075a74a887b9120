"""Configuration management for the sync layer (YAML + environment)."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from .exceptions import ConfigurationError

ENV_API_BASE_URL = "HAVENMIND_API_BASE_URL"
ENV_LOG_DIR = "HAVENMIND_LOG_DIR"
ENV_LOG_LEVEL = "HAVENMIND_LOG_LEVEL"


class Settings(BaseModel):
    """Client settings, resolved once at startup and passed to the client.

    ``api_base_url`` is the only switch between mock and live mode: when it
    is unset every accessor answers from the built-in mock dataset.
    """

    # HavenMind API
    api_base_url: Optional[str] = None
    documents_path: str = "/documents"

    # Ambient credentials shared by every request (session cookie etc.)
    cookies: Dict[str, str] = {}

    # Query cache
    cache_max_entries: int = 64

    # Logging
    log_dir: Optional[Path] = None
    log_level: str = "INFO"

    @field_validator("api_base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v.rstrip("/") or None

    @field_validator("documents_path", mode="before")
    @classmethod
    def _normalize_documents_path(cls, v):
        v = "/" + str(v).strip().strip("/")
        return v

    @field_validator("log_dir", mode="before")
    @classmethod
    def _coerce_path(cls, v):
        if v is None or v == "":
            return None
        return Path(v).expanduser() if not isinstance(v, Path) else v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return str(v).upper()

    @property
    def is_mock(self) -> bool:
        return self.api_base_url is None


def load_settings(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load Settings from an optional YAML file, then apply environment overrides.

    Args:
        config_path: YAML file, either flat or with a top-level ``havensync`` key
        env: Environment mapping (defaults to ``os.environ`` after loading ``.env``)

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    data: Dict[str, object] = {}
    if config_path:
        p = Path(config_path)
        if not p.exists():
            raise ConfigurationError(f"Config file not found: {p}")
        try:
            with open(p, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to load config from {p}: {e}")
        if isinstance(data.get("havensync"), dict):
            data = data["havensync"]

    if env is None:
        load_dotenv()
        env = os.environ

    if ENV_API_BASE_URL in env:
        data["api_base_url"] = env[ENV_API_BASE_URL]
    if env.get(ENV_LOG_DIR):
        data["log_dir"] = env[ENV_LOG_DIR]
    if env.get(ENV_LOG_LEVEL):
        data["log_level"] = env[ENV_LOG_LEVEL]

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}")
