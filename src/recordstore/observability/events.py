"""Per-model event bus with replay and isolated subscriber failures."""

from __future__ import annotations

import itertools
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Final

_DEFAULT_ERROR_BUFFER: Final[int] = 1024
_EVENT_IDS = itertools.count(1)


class ModelEventType(StrEnum):
    """Structural and record lifecycle notifications emitted by a model."""

    BEFORE_ADD_FIELD = "before_add_field"
    FIELD_ADDED = "field_added"
    BEFORE_REMOVE_FIELD = "before_remove_field"
    FIELD_REMOVED = "field_removed"
    BEFORE_UPDATE_FIELD = "before_update_field"
    FIELD_UPDATED = "field_updated"
    BEFORE_RETROFILL_FIELD = "before_retrofill_field"
    FIELD_RETROFILLED = "field_retrofilled"
    BEFORE_ADD_METHOD = "before_add_method"
    METHOD_ADDED = "method_added"
    BEFORE_REMOVE_METHOD = "before_remove_method"
    METHOD_REMOVED = "method_removed"
    BEFORE_ADD_PROPERTY = "before_add_property"
    PROPERTY_ADDED = "property_added"
    BEFORE_REMOVE_PROPERTY = "before_remove_property"
    PROPERTY_REMOVED = "property_removed"
    BEFORE_ADD_SCOPE = "before_add_scope"
    SCOPE_ADDED = "scope_added"
    BEFORE_REMOVE_SCOPE = "before_remove_scope"
    SCOPE_REMOVED = "scope_removed"
    BEFORE_ADD_VALIDATOR = "before_add_validator"
    VALIDATOR_ADDED = "validator_added"
    BEFORE_REMOVE_VALIDATOR = "before_remove_validator"
    VALIDATOR_REMOVED = "validator_removed"
    BEFORE_ADD_RELATIONSHIP = "before_add_relationship"
    RELATIONSHIP_ADDED = "relationship_added"
    RECORD_CREATED = "record_created"
    RECORD_REMOVED = "record_removed"
    RECORD_UPDATED = "record_updated"
    CHANGE = "change"


Subscriber = Callable[["ModelEvent"], object]


@dataclass(frozen=True, slots=True)
class ModelEvent:
    """One emitted notification. ``payload`` is a read-only view."""

    event_id: int
    event_type: ModelEventType
    model: str
    timestamp: datetime
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DispatchError:
    """Subscriber failure captured without interrupting the emitting model."""

    event_id: int
    event_type: str
    target: str
    error_type: str
    message: str


@dataclass(frozen=True, slots=True)
class _Subscription:
    token: int
    event_type: ModelEventType | None
    callback: Subscriber


class ModelEventBus:
    """Synchronous publish/subscribe channel owned by a single model."""

    def __init__(self, model_name: str, *, buffer_size: int = 256) -> None:
        if not isinstance(buffer_size, int) or isinstance(buffer_size, bool):
            raise ValueError(f"buffer_size must be an integer, got {type(buffer_size).__name__}")
        if buffer_size <= 0:
            raise ValueError("buffer_size must be > 0")

        self._model_name = model_name
        self._buffer = deque[ModelEvent](maxlen=buffer_size)
        self._subscriptions: dict[int, _Subscription] = {}
        self._dispatch_errors = deque[DispatchError](maxlen=_DEFAULT_ERROR_BUFFER)
        self._next_token = 1

    def subscribe(self, event_type: str | ModelEventType | None, callback: Subscriber) -> int:
        """Subscribe callback to one event type, or to all events when ``event_type`` is ``None``."""

        if not callable(callback):
            raise ValueError("callback must be callable")
        normalized = None if event_type is None else _as_event_type(event_type)

        token = self._next_token
        self._next_token += 1
        self._subscriptions[token] = _Subscription(
            token=token, event_type=normalized, callback=callback
        )
        return token

    def unsubscribe(self, token: int) -> bool:
        """Unsubscribe callback token. Returns ``True`` when token existed."""

        if not isinstance(token, int):
            raise ValueError(f"token must be an integer, got {type(token).__name__}")
        return self._subscriptions.pop(token, None) is not None

    def emit(
        self,
        event_type: str | ModelEventType,
        payload: Mapping[str, Any] | None = None,
    ) -> tuple[ModelEvent, tuple[DispatchError, ...]]:
        """Build, buffer and dispatch an event to matching subscribers in subscription order."""

        event = ModelEvent(
            event_id=next(_EVENT_IDS),
            event_type=_as_event_type(event_type),
            model=self._model_name,
            timestamp=datetime.now(tz=UTC),
            payload=MappingProxyType(dict(payload or {})),
        )
        self._buffer.append(event)

        errors: list[DispatchError] = []
        for subscription in tuple(self._subscriptions.values()):
            if subscription.event_type is not None and subscription.event_type != event.event_type:
                continue
            try:
                subscription.callback(event)
            except Exception as exc:  # noqa: BLE001
                errors.append(
                    DispatchError(
                        event_id=event.event_id,
                        event_type=event.event_type.value,
                        target=_callback_name(subscription.callback),
                        error_type=exc.__class__.__name__,
                        message=str(exc),
                    )
                )

        if errors:
            self._dispatch_errors.extend(errors)
        return event, tuple(errors)

    def replay(
        self,
        *,
        event_type: str | ModelEventType | None = None,
        limit: int | None = None,
    ) -> tuple[ModelEvent, ...]:
        """Replay buffered events in emit order."""

        type_filter = None if event_type is None else _as_event_type(event_type)
        events = [
            event
            for event in self._buffer
            if type_filter is None or event.event_type == type_filter
        ]
        return _tail(events, limit)

    def dispatch_errors(self, *, limit: int | None = None) -> tuple[DispatchError, ...]:
        """Return recorded subscriber failures."""

        return _tail(list(self._dispatch_errors), limit)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


def _tail(items: list[Any], limit: int | None) -> tuple[Any, ...]:
    if limit is None:
        return tuple(items)
    if not isinstance(limit, int):
        raise ValueError(f"limit must be an integer, got {type(limit).__name__}")
    if limit <= 0:
        return ()
    return tuple(items[-limit:])


def _as_event_type(value: str | ModelEventType) -> ModelEventType:
    if isinstance(value, ModelEventType):
        return value
    if not isinstance(value, str):
        raise ValueError(f"event_type must be string/ModelEventType, got {type(value).__name__}")
    try:
        return ModelEventType(value.strip())
    except ValueError as exc:
        allowed = ", ".join(item.value for item in ModelEventType)
        raise ValueError(f"invalid event_type {value!r}; allowed: {allowed}") from exc


def _callback_name(callback: object) -> str:
    name = getattr(callback, "__name__", None)
    if isinstance(name, str) and name:
        return name
    return callback.__class__.__name__


__all__ = [
    "DispatchError",
    "ModelEvent",
    "ModelEventBus",
    "ModelEventType",
    "Subscriber",
]
