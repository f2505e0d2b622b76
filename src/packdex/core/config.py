"""Configuration system for packdex using Pydantic."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from packdex.index.scanner import DEFAULT_SKIP_DIRS


class IndexConfig(BaseModel):
    """Workspace scanning configuration."""

    skip_dirs: list[str] = Field(default_factory=lambda: sorted(DEFAULT_SKIP_DIRS))
    max_file_size_kb: int = 0  # 0 = unlimited


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"


class PackdexConfig(BaseModel):
    """Root configuration model."""

    index: IndexConfig = Field(default_factory=IndexConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class EnvSettings(BaseSettings):
    """Environment variable overrides."""

    model_config = SettingsConfigDict(
        env_prefix="PACKDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str | None = None
    max_file_size_kb: int | None = None


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dicts, override wins on conflicts."""
    result = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML config file, return empty dict if not found."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _resolve_env_vars(value: Any) -> Any:
    """Recursively replace ${ENV_VAR} references with actual env values.

    If an env var is not set, the placeholder is preserved as-is.
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{(\w+)\}")
        return pattern.sub(
            lambda m: os.environ.get(m.group(1), m.group(0)),
            value,
        )
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(project_dir: Path | None = None) -> PackdexConfig:
    """Load configuration with layered precedence.

    Order (later overrides earlier):
    1. Built-in defaults (Pydantic defaults)
    2. ~/.packdex/config.yaml (global user config)
    3. .packdex/config.yaml (project-level config)
    4. Environment variables (PACKDEX_LOG_LEVEL, PACKDEX_MAX_FILE_SIZE_KB)
    """
    global_config_dir = Path.home() / ".packdex"
    project_config_dir = (project_dir or Path.cwd()) / ".packdex"

    merged: dict[str, Any] = {}
    for config_path in [
        global_config_dir / "config.yaml",
        project_config_dir / "config.yaml",
    ]:
        layer = load_yaml_config(config_path)
        merged = _deep_merge(merged, layer)

    config = PackdexConfig(**_resolve_env_vars(merged))

    env = EnvSettings()
    if env.log_level:
        config = config.model_copy(
            update={"logging": config.logging.model_copy(update={"level": env.log_level})}
        )
    if env.max_file_size_kb is not None:
        config = config.model_copy(
            update={"index": config.index.model_copy(update={"max_file_size_kb": env.max_file_size_kb})}
        )

    return config
