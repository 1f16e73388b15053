"""Unit tests for the record value holder surface."""

from __future__ import annotations

from recordstore.model import Model
from recordstore.records.record import MARKERS, Record, is_record
from recordstore.schema.field import Field


def test_record_forwards_item_and_attribute_access() -> None:
    model = Model("Note", fields=[Field.string("body")])
    record = model.create_record({"id": "n1", "body": "hi"})

    assert isinstance(record, Record)
    assert is_record(record)
    assert not is_record({"id": "n1"})

    record["body"] = "there"
    assert record.body == "there"
    assert record["body"] == "there"
    assert dict((name, record[name]) for name in record) == {"id": "n1", "body": "there"}


def test_markers_are_dunder_names() -> None:
    assert all(name.startswith("__") and name.endswith("__") for name in MARKERS)
