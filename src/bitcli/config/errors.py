from __future__ import annotations

from pathlib import Path
from typing import Sequence


class ConfigError(Exception):
    """Fatal configuration problem. Startup must not continue past one of these."""


class NotFound(ConfigError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Config file not found: {path}")
        self.path = path


class ParseError(ConfigError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to parse config file {path}: {reason}")
        self.path = path
        self.reason = reason


class CyclicImport(ConfigError):
    def __init__(self, chain: Sequence[Path]) -> None:
        rendered = " -> ".join(str(p) for p in chain)
        super().__init__(f"Cyclic config import: {rendered}")
        self.chain = tuple(chain)


class ImportTooDeep(ConfigError):
    def __init__(self, path: Path, max_depth: int) -> None:
        super().__init__(f"Config imports nested deeper than {max_depth} levels at {path}")
        self.path = path
        self.max_depth = max_depth


class MissingField(ConfigError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required config field: {field}")
        self.field = field


class InvalidValue(ConfigError):
    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid value for config field '{field}': {reason}")
        self.field = field
        self.reason = reason
