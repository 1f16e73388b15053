"""Typed store configuration with path-addressed validation issues."""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Final, Literal

ExperimentalPolicy = Literal["warn", "off", "error"]
LogFormat = Literal["console", "json"]

EXPERIMENTAL_POLICIES: Final[tuple[str, ...]] = ("warn", "off", "error")
LOG_FORMATS: Final[tuple[str, ...]] = ("console", "json")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Effective runtime settings shared by models, registries and loggers."""

    experimental_api_messages: ExperimentalPolicy = "warn"
    log_level: str = "INFO"
    log_format: LogFormat = "console"
    event_buffer_size: int = 256

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG: Final[Mapping[str, Any]] = MappingProxyType(StoreConfig().to_dict())


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with the typed config when no issues were found."""

    config: StoreConfig | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


def default_config() -> dict[str, Any]:
    """Return a fresh copy of the built-in defaults."""

    return copy.deepcopy(dict(DEFAULT_CONFIG))


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Shallow-merge ``overlay`` onto ``base``; the store config has no nested tables."""

    merged = dict(base)
    for key in sorted(overlay):
        merged[key] = overlay[key]
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate a flat config mapping and return structured issues."""

    if not isinstance(config, Mapping):
        issue = ConfigValidationIssue("<root>", f"expected table, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=(issue,))

    issues: list[ConfigValidationIssue] = []
    known = set(DEFAULT_CONFIG)
    for key in sorted(str(item) for item in config):
        if key not in known:
            issues.append(ConfigValidationIssue(key, "unknown setting"))

    values = merge_config(DEFAULT_CONFIG, config)

    policy = values["experimental_api_messages"]
    if policy not in EXPERIMENTAL_POLICIES:
        issues.append(
            ConfigValidationIssue(
                "experimental_api_messages",
                f"must be one of {', '.join(EXPERIMENTAL_POLICIES)}; got {policy!r}",
            )
        )

    level = values["log_level"]
    if not isinstance(level, str) or level.strip().upper() not in LOG_LEVELS:
        issues.append(
            ConfigValidationIssue("log_level", f"must be one of {', '.join(LOG_LEVELS)}; got {level!r}")
        )

    log_format = values["log_format"]
    if log_format not in LOG_FORMATS:
        issues.append(
            ConfigValidationIssue(
                "log_format", f"must be one of {', '.join(LOG_FORMATS)}; got {log_format!r}"
            )
        )

    buffer_size = values["event_buffer_size"]
    if not isinstance(buffer_size, int) or isinstance(buffer_size, bool) or buffer_size <= 0:
        issues.append(ConfigValidationIssue("event_buffer_size", "must be a positive integer"))

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))

    return ConfigValidationResult(
        config=StoreConfig(
            experimental_api_messages=policy,
            log_level=level.strip().upper(),
            log_format=log_format,
            event_buffer_size=buffer_size,
        ),
        issues=(),
    )


def assert_valid_config(config: Mapping[str, object] | object) -> StoreConfig:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


__all__ = [
    "DEFAULT_CONFIG",
    "EXPERIMENTAL_POLICIES",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ExperimentalPolicy",
    "LogFormat",
    "StoreConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
