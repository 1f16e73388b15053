"""Unit tests for the explicit model registry."""

from __future__ import annotations

import pytest

from recordstore.config.schema import StoreConfig
from recordstore.errors import DuplicationError
from recordstore.model import Model
from recordstore.records.relationships import RelationshipKind
from recordstore.registry import ModelRegistry
from recordstore.schema.field import Field


def test_register_get_and_iterate() -> None:
    registry = ModelRegistry()
    people = Model("Person", registry=registry)
    pets = registry.create_model("Pet", fields=[Field.string("name")])

    assert registry["Person"] is people
    assert registry.get("Pet") is pets
    assert registry.get("Missing") is None
    assert "Person" in registry
    assert registry.names == ("Person", "Pet")
    assert list(registry) == [people, pets]
    assert len(registry) == 2
    assert registry.register(people) is people


def test_duplicate_names_are_rejected() -> None:
    registry = ModelRegistry()
    registry.create_model("Person")
    with pytest.raises(DuplicationError):
        registry.create_model("Person")
    with pytest.raises(DuplicationError):
        registry.register(Model("Person"))


def test_separate_registries_are_isolated() -> None:
    first = ModelRegistry()
    second = ModelRegistry()
    first.create_model("Person")
    second.create_model("Person")
    assert first["Person"] is not second["Person"]


def test_unregister_and_clear() -> None:
    registry = ModelRegistry()
    model = registry.create_model("Person")
    registry.create_model("Pet")
    assert registry.unregister(model)
    assert not registry.unregister("Person")
    registry.clear()
    assert registry.names == ()
    registry.create_model("Person")


def test_models_inherit_the_registry_config() -> None:
    config = StoreConfig(experimental_api_messages="off", event_buffer_size=8)
    registry = ModelRegistry(config=config)
    assert registry.create_model("Person").config is config
    override = StoreConfig(event_buffer_size=4)
    assert registry.create_model("Pet", config=override).config is override


def test_relate_accepts_names_or_models() -> None:
    registry = ModelRegistry()
    owners = registry.create_model("Owner", fields=[Field.string("name")])
    registry.create_model("Pet", fields=[Field.string("name")])
    relationship = registry.relate("Pet", owners, name="owner", reverse_name="pets")
    assert relationship.kind is RelationshipKind.MANY_TO_ONE

    owners.create_record({"id": "o1", "name": "Ada"})
    pet = registry["Pet"].create_record({"id": "p1", "owner": "o1"})
    assert pet.owner is owners.records["o1"]
    assert owners.records["o1"].pets == [pet]

    with pytest.raises(KeyError):
        registry.relate("Nope", owners, name="x", reverse_name="y")
