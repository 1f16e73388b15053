"""Unit tests for structlog configuration helpers."""

from __future__ import annotations

import io
import json
from collections.abc import Iterator

import pytest
import structlog

from recordstore.config.schema import StoreConfig
from recordstore.model import Model
from recordstore.observability.logging import (
    configure_logging,
    get_logger,
    model_context,
    reset_logging,
)
from recordstore.schema.field import Field


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    yield
    reset_logging()


def _json_lines(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_json_output_includes_level_timestamp_and_context() -> None:
    stream = io.StringIO()
    configure_logging(StoreConfig(log_format="json", log_level="DEBUG"), stream=stream)

    with model_context(model="Person", request="r-1"):
        get_logger("recordstore.test").info("hello", answer=42)

    (entry,) = _json_lines(stream)
    assert entry["event"] == "hello"
    assert entry["answer"] == 42
    assert entry["level"] == "info"
    assert entry["model"] == "Person"
    assert entry["request"] == "r-1"
    assert str(entry["timestamp"]).endswith("Z")


def test_context_is_unbound_after_the_block() -> None:
    stream = io.StringIO()
    configure_logging(StoreConfig(log_format="json"), stream=stream)
    with model_context(model="Person"):
        pass
    get_logger().info("outside")
    (entry,) = _json_lines(stream)
    assert "model" not in entry


def test_level_filtering() -> None:
    stream = io.StringIO()
    configure_logging(StoreConfig(log_format="json", log_level="WARNING"), stream=stream)
    logger = get_logger()
    logger.info("dropped")
    logger.warning("kept")
    assert [entry["event"] for entry in _json_lines(stream)] == ["kept"]


def test_console_renderer_is_the_default() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)
    get_logger().warning("plain", detail="x")
    output = stream.getvalue()
    assert "plain" in output
    assert "detail=x" in output


def test_record_creation_is_logged_with_model_context() -> None:
    stream = io.StringIO()
    configure_logging(StoreConfig(log_format="json", log_level="DEBUG"), stream=stream)
    model = Model("Person", fields=[Field.string("name")])
    model.create_record({"id": "a"})
    created = [entry for entry in _json_lines(stream) if entry["event"] == "record_created"]
    assert created == [
        {
            "event": "record_created",
            "identity": "a",
            "model": "Person",
            "level": "debug",
            "timestamp": created[0]["timestamp"],
        }
    ]


def test_reset_restores_defaults() -> None:
    configure_logging(StoreConfig(log_format="json"))
    reset_logging()
    assert structlog.get_config()["processors"] != []
    assert not structlog.contextvars.get_contextvars()
