"""
Configuration loading and validation for InviteWatch.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from invitewatch.api import DEFAULT_URL_TEMPLATE, DEFAULT_USER_AGENT


class PollingConfig(BaseModel):
    """How often the log file and the directory are checked."""
    file_interval_seconds: float = Field(1.0, gt=0)
    directory_interval_seconds: float = Field(2.0, gt=0)


class CacheConfig(BaseModel):
    """World metadata cache settings."""
    ttl_seconds: float = Field(300, gt=0)
    sweep_interval_seconds: float = Field(600, gt=0)


class ApiConfig(BaseModel):
    """Remote world metadata endpoint."""
    url_template: str = DEFAULT_URL_TEMPLATE
    timeout_seconds: float = Field(10, gt=0)
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator("url_template")
    @classmethod
    def _has_placeholder(cls, value: str) -> str:
        if "{id}" not in value:
            raise ValueError("url_template must contain an '{id}' placeholder")
        return value


class ServerConfig(BaseModel):
    """Optional local metadata proxy."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = Field(3737, ge=0, le=65535)


class SinkConfig(BaseModel):
    """Configuration for an output sink."""
    type: str  # "console", "webhook"
    config: dict[str, Any] = Field(default_factory=dict)


def _default_sinks() -> list[SinkConfig]:
    return [SinkConfig(type="console")]


class Config(BaseModel):
    """Main configuration for InviteWatch."""
    log_directory: str | None = None
    settings_file: str = "~/.invitewatch/settings.json"
    polling: PollingConfig = Field(default_factory=PollingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    sinks: list[SinkConfig] = Field(default_factory=_default_sinks, min_length=1)


def load_config(config_path: str | Path | None) -> Config:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None for defaults

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
        yaml.YAMLError: If YAML parsing fails
    """
    if config_path is None:
        return Config()

    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with path.open('r', encoding='utf-8') as f:
        raw_config: dict[str, Any] | None = yaml.safe_load(f)

    try:
        return Config.model_validate(raw_config or {})
    except ValidationError as e:
        raise ValueError(f"Configuration validation error: {e}") from e
