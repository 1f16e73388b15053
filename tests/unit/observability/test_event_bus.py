"""Unit tests for the per-model event bus."""

from __future__ import annotations

import pytest

from recordstore.observability.events import ModelEvent, ModelEventBus, ModelEventType


def test_subscribers_receive_events_in_emit_order() -> None:
    bus = ModelEventBus("Person", buffer_size=10)
    sub_a: list[str] = []
    sub_b: list[str] = []
    bus.subscribe(None, lambda event: sub_a.append(event.event_type.value))
    bus.subscribe(None, lambda event: sub_b.append(event.event_type.value))

    _, errors_1 = bus.emit("field_added", {"field": "name"})
    _, errors_2 = bus.emit(ModelEventType.CHANGE, {"type": "field_added"})

    assert errors_1 == ()
    assert errors_2 == ()
    assert sub_a == ["field_added", "change"]
    assert sub_b == ["field_added", "change"]


def test_filtered_subscription_and_unsubscribe() -> None:
    bus = ModelEventBus("Person")
    received: list[ModelEvent] = []
    token = bus.subscribe("record_created", received.append)
    bus.emit("record_removed", {})
    bus.emit("record_created", {"identity": "a"})
    assert [event.payload["identity"] for event in received] == ["a"]
    assert received[0].model == "Person"

    assert bus.unsubscribe(token)
    assert not bus.unsubscribe(token)
    bus.emit("record_created", {"identity": "b"})
    assert len(received) == 1
    assert bus.subscriber_count == 0


def test_subscriber_exception_does_not_break_other_subscribers() -> None:
    bus = ModelEventBus("Person")
    received: list[str] = []

    def broken(_event: ModelEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(None, broken)
    bus.subscribe(None, lambda event: received.append(event.event_type.value))

    event, errors = bus.emit("method_added", {"method": "greet"})
    assert received == ["method_added"]
    assert len(errors) == 1
    assert errors[0].event_id == event.event_id
    assert errors[0].target == "broken"
    assert errors[0].error_type == "RuntimeError"
    assert errors[0].message == "boom"
    assert bus.dispatch_errors() == errors


def test_replay_is_bounded_and_filterable() -> None:
    bus = ModelEventBus("Person", buffer_size=3)
    for index in range(5):
        bus.emit("record_created", {"index": index})
    bus.emit("record_removed", {"index": 99})

    replayed = bus.replay()
    assert [event.payload["index"] for event in replayed] == [3, 4, 99]
    assert [event.payload["index"] for event in bus.replay(event_type="record_created")] == [3, 4]
    assert [event.payload["index"] for event in bus.replay(limit=1)] == [99]
    assert bus.replay(limit=0) == ()


def test_payload_is_read_only_and_event_ids_increase() -> None:
    bus = ModelEventBus("Person")
    first, _ = bus.emit("change", {"type": "field_added"})
    second, _ = bus.emit("change", {"type": "field_removed"})
    assert second.event_id > first.event_id
    with pytest.raises(TypeError):
        first.payload["type"] = "other"  # type: ignore[index]


def test_invalid_arguments_are_rejected() -> None:
    with pytest.raises(ValueError, match="buffer_size"):
        ModelEventBus("Person", buffer_size=0)
    bus = ModelEventBus("Person")
    with pytest.raises(ValueError, match="callable"):
        bus.subscribe(None, "nope")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="invalid event_type"):
        bus.emit("exploded", {})
    with pytest.raises(ValueError):
        bus.unsubscribe("1")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="limit"):
        bus.replay(limit="2")  # type: ignore[arg-type]
