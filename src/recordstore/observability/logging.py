"""structlog configuration for recordstore loggers.

Modules log through ``structlog.get_logger(__name__)``. ``configure_logging``
installs the processor chain (context-var merging, level filtering, ISO UTC
timestamps, console or JSON rendering) and ``model_context`` binds
correlation fields such as ``model`` for the duration of a block.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any, Final

import structlog

from recordstore.config.schema import StoreConfig

_DEFAULT_LOGGER_NAME: Final[str] = "recordstore"


def configure_logging(config: StoreConfig | None = None, *, stream: IO[str] | None = None) -> None:
    """Configure structlog from ``config`` (defaults when ``None``)."""

    effective = config if config is not None else StoreConfig()
    level = _parse_log_level(effective.log_level)
    renderer: Any = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if effective.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream if stream is not None else sys.stderr),
        cache_logger_on_first_use=False,
    )


def reset_logging() -> None:
    """Restore structlog defaults and drop any bound context variables."""

    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name if name is not None else _DEFAULT_LOGGER_NAME)


@contextmanager
def model_context(**fields: Any) -> Iterator[None]:
    """Temporarily bind correlation fields for log events in scope."""

    with structlog.contextvars.bound_contextvars(**fields):
        yield


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value

    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")

    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed

    raise ValueError(f"unsupported logging level {value!r}")


__all__ = ["configure_logging", "get_logger", "model_context", "reset_logging"]
