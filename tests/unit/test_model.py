"""Unit tests for model schema editing, record lifecycle and events."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from recordstore.config.schema import StoreConfig
from recordstore.errors import (
    DuplicationError,
    RecordNotFoundError,
    RecordTypeError,
    SchemaNameError,
    ValidationError,
    WriteError,
)
from recordstore.model import Model
from recordstore.observability.events import ModelEvent, ModelEventType
from recordstore.records.relationships import relate
from recordstore.schema.field import Field
from recordstore.schema.types import is_string


def _seeded() -> Model:
    model = Model("Person", fields=[Field.string("name")])
    model.create_record({"id": "a", "name": "Ada"})
    model.create_record({"id": "b", "name": "Bob"})
    return model


def test_required_field_and_model_validator_scenario() -> None:
    model = Model(
        "Person",
        fields=[Field.string("name"), Field.number_required("age", default=18)],
        validators={"name_not_equal_to_id": lambda record, others: record.name != record.id},
    )
    with pytest.raises(ValidationError) as excinfo:
        model.create_record({"id": "a", "name": "a"})
    assert excinfo.value.validator_name == "name_not_equal_to_id"
    assert len(model.records) == 0

    record = model.create_record({"id": "a", "name": "b"})
    assert record.age == 18


def test_unique_field_validator_scenario() -> None:
    model = Model(
        "Tag",
        key={"name": "id", "type": "auto"},
        fields=[{"name": "name", "type": "string", "validators": {"unique": True}}],
    )
    model.create_record({"name": "x"})
    with pytest.raises(ValidationError) as excinfo:
        model.create_record({"name": "x"})
    assert excinfo.value.validator_name == "name_unique"
    assert len(model.records) == 1


def test_constructor_rejects_invalid_names_and_collisions() -> None:
    with pytest.raises(SchemaNameError):
        Model("1Model")
    with pytest.raises(DuplicationError):
        Model("Person", fields=[Field.string("id")])
    with pytest.raises(DuplicationError):
        Model("Person", fields=[Field.string("name")], methods={"name": lambda record: 1})
    with pytest.raises(DuplicationError):
        Model("Person", methods={"label": lambda record: 1}, properties={"label": lambda record: 2})
    with pytest.raises(SchemaNameError, match="cached properties"):
        Model("Person", cached_properties=["missing"])
    with pytest.raises(RecordTypeError):
        Model("Person", key=5)  # type: ignore[arg-type]


def test_add_field_retrofills_required_fields_with_defaults() -> None:
    model = _seeded()
    model.add_field(Field.number_required("age", default=21))
    assert [record.age for record in model.records] == [21, 21]


def test_add_field_retrofill_value_and_callable() -> None:
    model = _seeded()
    model.add_field(Field.string_array("tags"), retrofill=["new"])
    first, second = model.records
    assert first.tags == ["new"]
    assert first.tags is not second.tags

    model.add_field({"name": "shout", "type": "string"}, retrofill=lambda record: record.name.upper())
    assert model.records.pluck("shout") == ["ADA", "BOB"]


def test_add_optional_field_without_retrofill_leaves_records_untouched() -> None:
    model = _seeded()
    model.add_field(Field.number("score"))
    assert model.records.pluck("score") == [None, None]
    assert "score" not in model.records["a"].__record_value__


def test_remove_field_hides_values_and_warns_when_missing() -> None:
    model = _seeded()
    assert model.remove_field("name")
    assert model.records["a"].name is None
    assert model.records["a"].to_dict() == {"id": "a"}
    with capture_logs() as logs:
        assert not model.remove_field("name")
    assert logs[0]["event"] == "missing_schema_member"
    assert logs[0]["log_level"] == "warning"


def test_update_field_keeps_existing_values_and_emits_update_events_only() -> None:
    model = _seeded()
    seen: list[str] = []
    model.on(None, lambda event: seen.append(event.event_type.value))

    updated = model.update_field("name", Field.string_required("name", default="anon"))
    assert updated.required
    assert model.records.pluck("name") == ["Ada", "Bob"]
    assert "field_added" not in seen
    assert "field_removed" not in seen
    assert seen[0] == "before_update_field"
    assert "field_updated" in seen
    assert seen[-1] == "change"

    with pytest.raises(SchemaNameError):
        model.update_field("name", Field.string("title"))


def test_update_field_keeps_relationship_resolution() -> None:
    authors = Model("Author")
    books = Model("Book")
    relationship = relate(books, authors, name="author", reverse_name="books")
    ada = authors.create_record({"id": "ada"})
    book = books.create_record({"id": "b1", "author": "ada"})

    books.update_field("author", books.fields["author"])
    assert books.relationships["author.author"] is relationship
    assert book.author is ada
    assert ada.books == [book]


def test_failed_update_field_keeps_previous_definition() -> None:
    model = _seeded()
    previous = model.fields["name"]

    with pytest.raises(RecordTypeError, match="unknown type"):
        model.update_field("name", {"name": "name", "type": "bogus"})
    assert model.fields["name"] is previous

    with pytest.raises(RecordTypeError):
        model.update_field("name", Field.string_required("name"), retrofill=5)
    assert model.fields["name"] is previous
    assert model.records.pluck("name") == ["Ada", "Bob"]


def test_methods_properties_and_validators_can_be_added_and_removed() -> None:
    model = _seeded()
    model.add_method("greet", lambda record, greeting="Hi": f"{greeting} {record.name}")
    model.add_property("initial", lambda record: record.name[0], cache=True)
    model.add_validator("has_name", lambda record, others: bool(record.name))

    record = model.records["a"]
    assert record.greet() == "Hi Ada"
    assert record.initial == "A"
    assert "initial" in model.cached_properties
    with pytest.raises(ValidationError, match="has_name"):
        record.name = ""

    assert model.remove_method("greet")
    assert model.remove_property("initial")
    assert model.remove_validator("has_name")
    assert record.greet is None
    assert record.initial is None
    record.name = ""
    assert not model.remove_method("greet")
    assert not model.remove_property("initial")
    assert not model.remove_validator("has_name")


def test_readding_a_property_drops_stale_cached_values() -> None:
    model = _seeded()
    model.add_property("label", lambda record: "old", cache=True)
    record = model.records["a"]
    assert record.label == "old"
    model.remove_property("label")
    model.add_property("label", lambda record: "new", cache=True)
    assert record.label == "new"


def test_schema_members_must_be_callable_and_unique() -> None:
    model = _seeded()
    with pytest.raises(RecordTypeError):
        model.add_method("greet", "hello")  # type: ignore[arg-type]
    with pytest.raises(RecordTypeError):
        model.add_validator("check", None)  # type: ignore[arg-type]
    model.add_validator("check", lambda record, others: True)
    with pytest.raises(DuplicationError):
        model.add_validator("check", lambda record, others: True)
    with pytest.raises(DuplicationError):
        model.add_property("name", lambda record: 1)
    with pytest.raises(RecordTypeError):
        model.add_field("name")  # type: ignore[arg-type]
    with pytest.raises(RecordTypeError):
        model.add_field(Field.auto("serial"))


def test_scopes_through_the_model() -> None:
    model = _seeded()
    model.add_scope("starts_with_a", lambda record: record.name.startswith("A"))
    assert model.records.starts_with_a.ids() == ("a",)
    assert model.remove_scope("starts_with_a")
    assert not model.remove_scope("starts_with_a")


def test_remove_record() -> None:
    model = _seeded()
    assert model.remove_record("a")
    assert model.records.ids() == ("b",)
    with capture_logs() as logs:
        assert not model.remove_record("a")
    assert logs[0]["event"] == "missing_record"


def test_update_record() -> None:
    model = Model(
        "Person",
        fields=[Field.string("name"), Field.number_required("age", default=18)],
        validators={"adult": lambda record, others: record.age >= 18},
    )
    model.create_record({"id": "a", "name": "Ada"})

    record = model.update_record("a", {"id": "a", "name": "Ada L.", "age": 36})
    assert record.to_dict() == {"id": "a", "name": "Ada L.", "age": 36}

    with pytest.raises(RecordNotFoundError):
        model.update_record("z", {"name": "x"})
    with pytest.raises(KeyError):
        model.update_record("z", {"name": "x"})
    with pytest.raises(RecordTypeError):
        model.update_record("a", ["name"])  # type: ignore[arg-type]
    with pytest.raises(WriteError):
        model.update_record("a", {"id": "b"})
    with pytest.raises(ValidationError, match="adult"):
        model.update_record("a", {"age": 3})


def test_update_record_runs_model_validators_once_after_all_writes() -> None:
    model = Model(
        "Range",
        fields=[Field.number_required("low"), Field.number_required("high")],
        validators={"ordered": lambda record, others: record.low <= record.high},
    )
    model.create_record({"id": "r", "low": 1, "high": 2})
    model.update_record("r", {"low": 5, "high": 9})
    assert model.records["r"].low == 5


def test_record_events_and_change_payloads() -> None:
    model = Model("Person", fields=[Field.string("name")])
    events: list[ModelEvent] = []
    token = model.on(ModelEventType.CHANGE, events.append)

    model.create_record({"id": "a"})
    model.update_record("a", {"name": "Ada"})
    model.remove_record("a")
    assert [event.payload["type"] for event in events] == [
        "record_created",
        "record_updated",
        "record_removed",
    ]
    assert all(event.model == "Person" for event in events)

    assert model.off(token)
    model.create_record({"id": "b"})
    assert len(events) == 3
    assert len(model.events.replay(event_type="record_created")) == 2


def test_field_events_are_emitted_in_order() -> None:
    model = Model("Person")
    seen: list[str] = []
    model.on(None, lambda event: seen.append(event.event_type.value))
    model.add_field(Field.string("name"))
    assert seen == [
        "before_add_field",
        "field_added",
        "before_retrofill_field",
        "field_retrofilled",
        "change",
    ]


def test_subscriber_errors_do_not_break_schema_changes() -> None:
    model = Model("Person")

    def broken(event: ModelEvent) -> None:
        raise RuntimeError("boom")

    model.on(ModelEventType.FIELD_ADDED, broken)
    model.add_field(Field.string("name"))
    assert "name" in model.fields
    errors = model.events.dispatch_errors()
    assert [error.target for error in errors] == ["broken"]


def test_experimental_field_types_follow_configuration() -> None:
    with capture_logs() as logs:
        Model("Warned", fields=[{"name": "code", "type": is_string}])
    assert [entry["event"] for entry in logs] == ["experimental_field_type"]

    with capture_logs() as logs:
        Model(
            "Quiet",
            fields=[Field("code", is_string)],
            config=StoreConfig(experimental_api_messages="off"),
        )
    assert logs == []

    with pytest.raises(RecordTypeError, match="standard types"):
        Model(
            "Strict",
            fields=[{"name": "code", "type": is_string}],
            config=StoreConfig(experimental_api_messages="error"),
        )


def test_model_event_buffer_follows_configuration() -> None:
    model = Model("Small", config=StoreConfig(event_buffer_size=2))
    for index in range(3):
        model.create_record({"id": f"r{index}"})
    assert len(model.events.replay()) == 2


def test_schema_views_are_read_only() -> None:
    model = _seeded()
    with pytest.raises(TypeError):
        model.fields["other"] = Field.string("other")  # type: ignore[index]
