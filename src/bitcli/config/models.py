from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

DEFAULT_API_URL = "https://api-ssl.bitly.com"
DEFAULT_MAX_CONCURRENT = 16


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = Field(default=5, ge=0)


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    rotation: FileRotationSettings = Field(default_factory=FileRotationSettings)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "WARNING"
    file: Optional[FileLoggingSettings] = None

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level


class AppConfig(BaseModel):
    """
    Effective runtime configuration after all config fragments, environment
    overrides and command-line options have been applied.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_url: str = DEFAULT_API_URL

    # API access token
    api_token: SecretStr

    # Domain to create bitlinks under (the provider defaults to bit.ly)
    domain: Optional[str] = None

    # Group GUID used in shorten requests; fetched from the user profile if unset
    default_group_guid: Optional[str] = None

    # An empty string disables caching, as does leaving it unset
    cache_dir: Optional[str] = None

    # Serve from the local cache only, never calling the API. Ignored when caching is disabled.
    offline: bool = False

    max_concurrent: int = Field(default=DEFAULT_MAX_CONCURRENT, ge=1)
    request_timeout_seconds: float = Field(default=30, gt=0)

    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("cache_dir")
    @classmethod
    def _check_cache_dir(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and "\x00" in value:
            raise ValueError("path must not contain NUL bytes")
        return value

    @model_validator(mode="before")
    @classmethod
    def _offline_requires_cache(cls, data: Any) -> Any:
        # Without a cache every lookup is a miss, so offline mode would fail every URL.
        if isinstance(data, dict) and not data.get("cache_dir") and data.get("offline"):
            data = {**data, "offline": False}
        return data

    @property
    def cache_path(self) -> Optional[Path]:
        if not self.cache_dir:
            return None
        return Path(self.cache_dir).expanduser()

    @property
    def caching_enabled(self) -> bool:
        return self.cache_path is not None


@dataclass(frozen=True, slots=True)
class Options:
    """Command-line overrides. Fields left as None keep the configured value."""

    domain: Optional[str] = None
    group_guid: Optional[str] = None
    cache_dir: Optional[str] = None
    offline: Optional[bool] = None
    max_concurrent: Optional[int] = None

    def as_overrides(self) -> dict[str, Any]:
        updates = {
            "domain": self.domain,
            "default_group_guid": self.group_guid,
            "cache_dir": self.cache_dir,
            "offline": self.offline,
            "max_concurrent": self.max_concurrent,
        }
        return {key: value for key, value in updates.items() if value is not None}


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from
    and which command-line options take precedence over it.
    """

    config_path: str
    env_prefix: str = "BITCLI__"
    dotenv_path: Optional[str] = None
    options: Options = field(default_factory=Options)
