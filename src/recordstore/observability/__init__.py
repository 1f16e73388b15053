"""Logging setup and the per-model event bus."""

from recordstore.observability.events import (
    DispatchError,
    ModelEvent,
    ModelEventBus,
    ModelEventType,
)
from recordstore.observability.logging import (
    configure_logging,
    get_logger,
    model_context,
    reset_logging,
)

__all__ = [
    "DispatchError",
    "ModelEvent",
    "ModelEventBus",
    "ModelEventType",
    "configure_logging",
    "get_logger",
    "model_context",
    "reset_logging",
]
