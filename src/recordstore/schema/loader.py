"""Declarative model definitions from YAML documents.

Document shape::

    models:
      - name: Author
        key: id                      # or {name: id, type: auto}
        fields:
          - {name: name, type: string_required, validators: {unique: true}}
          - {name: rank, type: enum, values: [junior, senior]}
        records:
          - {id: a1, name: Ada}
    relationships:
      - {source: Book, target: Author, name: author, reverse_name: books, kind: many_to_one}

Models are built and related first, then seeded in document order, and only
registered once the whole document succeeded. Relationship sides installed on
already registered models are detached again when a later step fails.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Final, cast

import structlog
import yaml

from recordstore.config.schema import StoreConfig
from recordstore.errors import RecordStoreError, SchemaLoadError
from recordstore.model import Model
from recordstore.records.relationships import Relationship

if TYPE_CHECKING:
    from recordstore.registry import ModelRegistry

_log = structlog.get_logger(__name__)

_MODEL_KEYS: Final[frozenset[str]] = frozenset({"name", "key", "fields", "records"})
_RELATIONSHIP_KEYS: Final[frozenset[str]] = frozenset(
    {"source", "target", "name", "reverse_name", "kind"}
)


def load_schema(
    path: str | Path,
    registry: ModelRegistry,
    *,
    config: StoreConfig | None = None,
) -> tuple[Model, ...]:
    """Load a YAML schema file and register its models in ``registry``."""

    source = Path(path)
    try:
        with source.open("r", encoding="utf-8") as handle:
            loaded = cast("object", yaml.safe_load(handle))
    except yaml.YAMLError as exc:
        raise SchemaLoadError(f"{source}: invalid YAML ({exc})") from exc
    except OSError as exc:
        raise SchemaLoadError(f"{source}: unable to read schema ({exc})") from exc

    models = parse_schema(loaded, registry, config=config, location=str(source))
    _log.info("schema_loaded", path=str(source), models=[model.name for model in models])
    return models


def parse_schema(
    payload: object,
    registry: ModelRegistry,
    *,
    config: StoreConfig | None = None,
    location: str = "<schema>",
) -> tuple[Model, ...]:
    """Build, relate, seed and register the models described by ``payload``."""

    document = _as_mapping(payload, location)
    unknown = sorted(set(document) - {"models", "relationships"})
    if unknown:
        raise SchemaLoadError(f"{location}: unexpected top-level keys: {unknown}")

    effective_config = config if config is not None else registry.config
    model_entries = _as_sequence(document.get("models", []), f"{location}.models")
    relationship_entries = _as_sequence(
        document.get("relationships", []), f"{location}.relationships"
    )

    built: dict[str, Model] = {}
    seeds: list[tuple[Model, Sequence[object], str]] = []
    for index, entry in enumerate(model_entries):
        entry_location = f"{location}.models[{index}]"
        declaration = _as_mapping(entry, entry_location)
        _reject_unknown(declaration, _MODEL_KEYS, entry_location)
        name = declaration.get("name")
        if not isinstance(name, str) or not name:
            raise SchemaLoadError(f"{entry_location}: name must be a non-empty string")
        if name in built or name in registry:
            raise SchemaLoadError(f"{entry_location}: model {name!r} is already defined")
        fields = _as_sequence(declaration.get("fields", []), f"{entry_location}.fields")
        try:
            model = Model(
                name,
                key=cast("str | Mapping[str, object]", declaration.get("key", "id")),
                fields=[_as_mapping(field, f"{entry_location}.fields") for field in fields],
                config=effective_config,
            )
        except RecordStoreError as exc:
            raise SchemaLoadError(f"{entry_location}: {exc}") from exc
        built[name] = model
        records = _as_sequence(declaration.get("records", []), f"{entry_location}.records")
        seeds.append((model, records, entry_location))

    installed: list[Relationship] = []
    try:
        for index, entry in enumerate(relationship_entries):
            installed.append(_install_relationship(entry, built, registry, f"{location}.relationships[{index}]"))

        for model, records, entry_location in seeds:
            for index, record in enumerate(records):
                try:
                    model.create_record(_as_mapping(record, f"{entry_location}.records[{index}]"))
                except RecordStoreError as exc:
                    raise SchemaLoadError(f"{entry_location}.records[{index}]: {exc}") from exc
    except Exception:
        _detach(installed, built)
        raise

    for model in built.values():
        registry.register(model)
    return tuple(built.values())


def _install_relationship(
    entry: object, built: Mapping[str, Model], registry: ModelRegistry, location: str
) -> Relationship:
    declaration = _as_mapping(entry, location)
    _reject_unknown(declaration, _RELATIONSHIP_KEYS, location)
    missing = sorted(key for key in ("source", "target", "name", "reverse_name") if key not in declaration)
    if missing:
        raise SchemaLoadError(f"{location}: missing required fields: {missing}")
    try:
        return Relationship(
            source=_lookup(declaration["source"], built, registry, location),
            target=_lookup(declaration["target"], built, registry, location),
            name=cast("str", declaration["name"]),
            reverse_name=cast("str", declaration["reverse_name"]),
            kind=cast("str", declaration.get("kind", "many_to_one")),
        ).install()
    except RecordStoreError as exc:
        raise SchemaLoadError(f"{location}: {exc}") from exc


def _detach(installed: Sequence[Relationship], built: Mapping[str, Model]) -> None:
    """Remove the sides of ``installed`` that landed on already registered models."""

    for relationship in reversed(installed):
        if relationship.target.name not in built:
            relationship.target.remove_property(relationship.reverse_name)
            _log.info("relationship_detached", model=relationship.target.name, name=relationship.reverse_name)
        if relationship.source.name not in built:
            relationship.source.remove_field(relationship.name)
            _log.info("relationship_detached", model=relationship.source.name, name=relationship.name)


def _lookup(
    name: object, built: Mapping[str, Model], registry: ModelRegistry, location: str
) -> Model:
    if isinstance(name, str):
        model = built.get(name) or registry.get(name)
        if model is not None:
            return model
    raise SchemaLoadError(f"{location}: unknown model {name!r}")


def _reject_unknown(declaration: Mapping[str, object], allowed: frozenset[str], location: str) -> None:
    unknown = sorted(set(declaration) - allowed)
    if unknown:
        raise SchemaLoadError(f"{location}: unexpected keys: {unknown}")


def _as_mapping(value: object, location: str) -> dict[str, object]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SchemaLoadError(f"{location}: expected mapping, got {type(value).__name__}")
    for key in value:
        if not isinstance(key, str):
            raise SchemaLoadError(f"{location}: keys must be strings")
    return dict(value)


def _as_sequence(value: object, location: str) -> list[object]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaLoadError(f"{location}: expected sequence, got {type(value).__name__}")
    return list(value)


__all__ = ["load_schema", "parse_schema"]
