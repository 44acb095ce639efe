from bitcli.config.errors import (
    ConfigError,
    CyclicImport,
    ImportTooDeep,
    InvalidValue,
    MissingField,
    NotFound,
    ParseError,
)
from bitcli.config.loader import TomlConfigLoader, default_config_path, resolve_config
from bitcli.config.models import AppConfig, ConfigLoadRequest, LoggingSettings, Options

__all__ = [
    "AppConfig",
    "ConfigError",
    "ConfigLoadRequest",
    "CyclicImport",
    "ImportTooDeep",
    "InvalidValue",
    "LoggingSettings",
    "MissingField",
    "NotFound",
    "Options",
    "ParseError",
    "TomlConfigLoader",
    "default_config_path",
    "resolve_config",
]
