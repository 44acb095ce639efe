from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from bitcli import APP
from bitcli.config.errors import (
    CyclicImport,
    ImportTooDeep,
    InvalidValue,
    MissingField,
    NotFound,
    ParseError,
)
from bitcli.config.models import AppConfig, ConfigLoadRequest

logger = logging.getLogger(__name__)

MAX_IMPORT_DEPTH = 8
IMPORT_KEY = "import"
_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def default_config_path() -> Path:
    """Locate config.toml under the XDG config home (~/.config/bitcli/ by default)."""
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".config"
    return base / APP / "config.toml"


def read_fragment(path: Path) -> dict[str, Any]:
    """Read one config file into a raw mapping. TOML by default, YAML by suffix."""
    if not path.is_file():
        raise NotFound(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise NotFound(path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(path, str(e)) from e

    if path.suffix.lower() in _YAML_SUFFIXES:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ParseError(path, str(e)) from e
        if data is None:
            return {}
    else:
        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as e:
            raise ParseError(path, str(e)) from e

    if not isinstance(data, dict):
        raise ParseError(path, f"top-level document must be a mapping, got: {type(data).__name__}")
    return data


def _resolve_import_path(config_dir: Path, entry: str) -> Path:
    path = Path(entry)
    try:
        if entry.startswith("~"):
            path = path.expanduser()
        elif not path.is_absolute():
            path = config_dir / path
        return path.resolve()
    except (RuntimeError, ValueError) as e:
        # Unknown ~user home directories and embedded NUL bytes land here.
        raise InvalidValue(IMPORT_KEY, f"cannot resolve {entry!r} from {config_dir}: {e}") from e


def _split_imports(path: Path, fragment: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    own = {k: v for k, v in fragment.items() if k != IMPORT_KEY}
    imports = fragment.get(IMPORT_KEY, [])
    if isinstance(imports, str):
        imports = [imports]
    if not isinstance(imports, list) or not all(isinstance(entry, str) for entry in imports):
        raise InvalidValue(IMPORT_KEY, f"expected a list of paths in {path}")
    return own, imports


def _merge_fragment(path: Path, chain: tuple[Path, ...]) -> dict[str, Any]:
    if path in chain:
        raise CyclicImport((*chain, path))
    if len(chain) > MAX_IMPORT_DEPTH:
        raise ImportTooDeep(path, MAX_IMPORT_DEPTH)

    own, imports = _split_imports(path, read_fragment(path))
    logger.debug("Config fragment loaded. path=%s depth=%d imports=%d", path, len(chain), len(imports))

    # Imports have the lowest precedence; later siblings override earlier ones.
    merged: dict[str, Any] = {}
    for entry in imports:
        import_path = _resolve_import_path(path.parent, entry)
        merged.update(_merge_fragment(import_path, (*chain, path)))
    merged.update(own)
    return merged


def merge_fragments(root_path: Path | str) -> dict[str, Any]:
    """Load a root config file with all of its transitive imports into one raw mapping."""
    try:
        root = Path(root_path).expanduser().resolve()
    except (RuntimeError, ValueError) as e:
        raise NotFound(Path(root_path)) from e
    return _merge_fragment(root, ())


def _env_var_name_to_segments(env_var_name: str, prefix: str) -> Sequence[str]:
    remainder = env_var_name[len(prefix) :]
    parts = [p for p in remainder.split("__") if p]
    if not parts:
        raise InvalidValue(env_var_name, "invalid environment variable override name")
    return [p.lower() for p in parts]


def _apply_env_overrides(config: MutableMapping[str, Any], env_prefix: str) -> None:
    for name, value in os.environ.items():
        if not name.startswith(env_prefix):
            continue

        segments = _env_var_name_to_segments(name, env_prefix)
        dotted = ".".join(segments)
        if segments[0] not in AppConfig.model_fields:
            raise InvalidValue(dotted, f"unknown configuration key (from {name})")

        parent: MutableMapping[str, Any] = config
        for segment in segments[:-1]:
            next_value = parent.setdefault(segment, {})
            if not isinstance(next_value, MutableMapping):
                raise InvalidValue(dotted, "configuration key path does not point to a mapping")
            parent = next_value
        parent[segments[-1]] = value
        logger.debug("Config override applied from environment. key=%s", dotted)


def validate_config(merged: Mapping[str, Any]) -> AppConfig:
    token = merged.get("api_token")
    if token is None or (isinstance(token, str) and not token.strip()):
        raise MissingField("api_token")

    try:
        return AppConfig.model_validate(merged)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "<root>"
        if error["type"] == "missing":
            raise MissingField(field) from e
        raise InvalidValue(field, error["msg"]) from e


def resolve_config(root_path: Path | str) -> AppConfig:
    """Merge a config file with its imports and validate the result."""
    return validate_config(merge_fragments(root_path))


class TomlConfigLoader:
    async def load(self, request: ConfigLoadRequest) -> AppConfig:
        config = merge_fragments(request.config_path)

        if request.dotenv_path is not None:
            dotenv_path = Path(request.dotenv_path)
            if dotenv_path.exists():
                load_dotenv(dotenv_path=dotenv_path, override=False)

        _apply_env_overrides(config, request.env_prefix)
        config.update(request.options.as_overrides())
        return validate_config(config)
