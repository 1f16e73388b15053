"""Runtime config loader.

Precedence: explicit overrides > env (``RECORDSTORE_``) > TOML file > defaults.
The TOML file keeps store settings under a ``[recordstore]`` table.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final, Literal

from recordstore.config.schema import (
    DEFAULT_CONFIG,
    StoreConfig,
    assert_valid_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "recordstore.toml"
CONFIG_TABLE: Final[str] = "recordstore"
ENV_PREFIX: Final[str] = "RECORDSTORE_"


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or env values cannot be coerced."""


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
) -> StoreConfig:
    """Load the effective ``StoreConfig``.

    A missing explicit ``path`` is an error; a missing default
    ``recordstore.toml`` in the working directory is ignored.
    """

    resolved_path = _resolve_config_path(path)
    file_payload = _load_toml_file(resolved_path, required=path is not None)
    env_map = os.environ if environ is None else environ

    merged = merge_config(DEFAULT_CONFIG, file_payload)
    assert_valid_config(merged)
    merged = merge_config(merged, _collect_env_overrides(env_map))
    merged = merge_config(merged, dict(overrides or {}))
    return assert_valid_config(merged)


def _resolve_config_path(path: str | Path | None) -> Path:
    if path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(path).expanduser().resolve()


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            parsed = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    table = parsed.get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigLoadError(f"[{CONFIG_TABLE}] must be a table: {path}")
    return table


def _collect_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key in sorted(DEFAULT_CONFIG):
        env_name = _env_name_for_key(key)
        raw = environ.get(env_name)
        if raw is None:
            continue
        overrides[key] = _coerce_env(raw, _kind_for_value(DEFAULT_CONFIG[key]), env_name)
    return overrides


def _kind_for_value(value: object) -> Literal["str", "int"]:
    return "int" if isinstance(value, int) else "str"


def _coerce_env(raw: str, value_type: Literal["str", "int"], env_name: str) -> object:
    value = raw.strip()
    if value_type == "str":
        return value
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigLoadError(f"{env_name} must be an integer") from exc


def _env_name_for_key(key: str) -> str:
    return ENV_PREFIX + key.upper()


__all__ = ["CONFIG_TABLE", "ConfigLoadError", "DEFAULT_CONFIG_FILE", "ENV_PREFIX", "load_config"]
