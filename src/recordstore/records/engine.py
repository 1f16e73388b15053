"""Record access engine: mediated reads, validated writes, and record construction.

Attribute resolution is an explicit dispatch over ``AttributeKind`` evaluated in
a fixed order: relationship field, key or field, computed property, method,
serialization, stringification, introspection marker, unknown. Relationship
fields are checked first so their raw stored identities are never returned.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

import structlog

from recordstore.errors import (
    DuplicationError,
    RecordTypeError,
    ValidationError,
    WriteError,
)
from recordstore.records.record import (
    IS_RECORD,
    MARKERS,
    RECORD_MODEL,
    RECORD_TAG,
    RECORD_VALUE,
    Record,
)

if TYPE_CHECKING:
    from recordstore.model import Model
    from recordstore.schema.field import Field

_SERIALIZE_NAMES: Final[frozenset[str]] = frozenset({"to_dict", "to_object", "to_json"})
_STRINGIFY_NAME: Final[str] = "to_string"


class AttributeKind(StrEnum):
    """Category an attribute name resolves to, in precedence order."""

    RELATIONSHIP = "relationship"
    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"
    SERIALIZE = "serialize"
    STRINGIFY = "stringify"
    MARKER = "marker"
    UNKNOWN = "unknown"


class AccessEngine:
    """Mediates every read and write against the records of one model."""

    __slots__ = ("_model", "_logger", "_readers")

    def __init__(self, model: Model, *, logger: Any | None = None) -> None:
        self._model = model
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._readers: dict[AttributeKind, Callable[[Record, str], Any]] = {
            AttributeKind.RELATIONSHIP: self._read_relationship,
            AttributeKind.FIELD: self._read_field,
            AttributeKind.PROPERTY: self._read_property,
            AttributeKind.METHOD: self._read_method,
            AttributeKind.SERIALIZE: self._read_serializer,
            AttributeKind.STRINGIFY: self._read_stringifier,
            AttributeKind.MARKER: self._read_marker,
            AttributeKind.UNKNOWN: _read_nothing,
        }

    @property
    def model(self) -> Model:
        return self._model

    # Record construction

    def create_record(self, data: object) -> tuple[Any, Record]:
        """Validate ``data`` and build a record; the caller inserts it on success."""

        model = self._model
        if data is None:
            raise RecordTypeError("Record data cannot be empty.")
        if not isinstance(data, Mapping):
            raise RecordTypeError("Record data must be a mapping.")

        key = model.key
        if key.is_auto:
            identity = key.resolve_default()
        else:
            identity = data.get(key.name)
            if not key.type_check(identity):
                raise RecordTypeError(f"{model.name} record has invalid id.")
        if identity in model.records:
            raise DuplicationError(f"{model.name} record with id {identity!r} already exists.")

        cloned = copy.deepcopy(dict(data))
        record = Record(self, {key.name: identity})
        for name in tuple(model.fields):
            self.set(record, name, cloned.get(name), bulk_load=True)

        object.__setattr__(record, "_initialized", True)
        record._cache.clear()
        self.run_model_validators(record)

        self._logger.debug("record_constructed", model=model.name, identity=identity)
        return identity, record

    def run_model_validators(self, record: Record) -> None:
        """Check ``record`` against every model-level validator, in declaration order."""

        model = self._model
        identity = self.get_identity(record)
        others = model.records.excluding(identity)
        for validator_name, validator in model.validators.items():
            if not validator(record, others):
                raise ValidationError(model.name, identity, validator_name)

    def discard_cached(self, name: str) -> None:
        """Drop one cached property value from every record of the model."""

        for record in self._model.records:
            record._cache.pop(name, None)

    def get_identity(self, record: Record) -> Any:
        return record._value[self._model.key.name]

    # Read path

    def resolve(self, name: object) -> AttributeKind:
        """Classify ``name`` against the model schema."""

        if not isinstance(name, str):
            return AttributeKind.UNKNOWN
        model = self._model
        if self._is_relationship_field(name):
            return AttributeKind.RELATIONSHIP

        is_field = name == model.key.name or name in model.fields
        is_property = name in model.properties
        is_method = name in model.methods
        if is_field + is_property + is_method > 1:
            self._logger.warning("attribute_name_collision", model=model.name, attribute=name)
            return AttributeKind.UNKNOWN
        if is_field:
            return AttributeKind.FIELD
        if is_property:
            return AttributeKind.PROPERTY
        if is_method:
            return AttributeKind.METHOD
        if name in _SERIALIZE_NAMES:
            return AttributeKind.SERIALIZE
        if name == _STRINGIFY_NAME:
            return AttributeKind.STRINGIFY
        if name in MARKERS:
            return AttributeKind.MARKER
        return AttributeKind.UNKNOWN

    def get(self, record: Record, name: str) -> Any:
        """Return a value, a callable, or ``None`` for unknown names."""

        return self._readers[self.resolve(name)](record, name)

    def _read_relationship(self, record: Record, name: str) -> Any:
        relationship = self._model.relationships[f"{name}.{name}"]
        return relationship.resolve(self._model.name, name, record._value)

    def _read_field(self, record: Record, name: str) -> Any:
        return record._value.get(name)

    def _read_property(self, record: Record, name: str) -> Any:
        compute = self._model.properties[name]
        if name not in self._model.cached_properties:
            return compute(record)
        cache = record._cache
        if name in cache:
            return cache[name]
        value = compute(record)
        cache[name] = value
        return value

    def _read_method(self, record: Record, name: str) -> Callable[..., Any]:
        method = self._model.methods[name]

        def bound(*args: Any, **kwargs: Any) -> Any:
            return method(record, *args, **kwargs)

        bound.__name__ = name
        return bound

    def _read_serializer(self, record: Record, name: str) -> Callable[..., Any]:
        if name == "to_json":

            def to_json(*, include: Iterable[str] = ()) -> str:
                return _canonical_json(self.serialize(record, include=include))

            return to_json

        def to_dict(*, include: Iterable[str] = ()) -> dict[str, Any]:
            return self.serialize(record, include=include)

        return to_dict

    def _read_stringifier(self, record: Record, name: str) -> Callable[[], Any]:
        return lambda: self.get_identity(record)

    def _read_marker(self, record: Record, name: str) -> Any:
        if name == IS_RECORD:
            return True
        if name == RECORD_MODEL:
            return self._model
        if name == RECORD_VALUE:
            return record._value
        if name == RECORD_TAG:
            return f"{self._model.name}#{self.get_identity(record)}"
        return None

    # Serialization

    def serialize(self, record: Record, *, include: Iterable[str] = ()) -> dict[str, Any]:
        """Plain dict of the key and every non-``None`` field.

        ``include`` names relationship fields to expand; dotted paths such as
        ``"author.publisher"`` expand recursively through the related record.
        """

        model = self._model
        value = record._value
        key_name = model.key.name
        result: dict[str, Any] = {key_name: value[key_name]}
        for name in model.fields:
            item = value.get(name)
            if item is not None:
                result[name] = copy.deepcopy(item)

        if isinstance(include, str):
            include = (include,)
        for path in include:
            head, _, rest = path.partition(".")
            nested = (rest,) if rest else ()
            if not result.get(head) or not self._is_relationship_field(head):
                continue
            related = self.get(record, head)
            if isinstance(related, list):
                result[head] = [item.to_dict(include=nested) for item in related]
            elif related is not None:
                result[head] = related.to_dict(include=nested)
        return result

    # Write path

    def set(self, record: Record, name: str, value: Any, *, bulk_load: bool = False) -> bool:
        """Validate and store one attribute; raises on any rejection.

        Not transactional: when a validator fails the new value stays stored.
        """

        model = self._model
        identity = self.get_identity(record)
        if name in model.properties:
            raise WriteError(f"{model.name} record {identity!r} cannot set property {name}.")
        if name in model.methods:
            raise WriteError(f"{model.name} record {identity!r} cannot set method {name}.")
        if name == model.key.name:
            raise WriteError(f"{model.name} record {identity!r} cannot reassign key {name}.")

        field = model.fields.get(name)
        if field is None:
            self._logger.warning(
                "unknown_field_write", model=model.name, identity=identity, attribute=name
            )
        else:
            self._write_field(record, field, value, self._is_relationship_field(name))
            others = model.records.excluding(identity)
            for validator_name, validator in field.validators.items():
                if record._value.get(name) is not None and not validator(record, others):
                    raise ValidationError(model.name, identity, validator_name)

        if not bulk_load:
            self.run_model_validators(record)
        return True

    def _write_field(
        self, record: Record, field: Field, value: Any, is_relationship: bool
    ) -> None:
        effective = field.resolve_default() if value is None else value
        if not is_relationship and not field.type_check(effective):
            raise RecordTypeError(f"{self._model.name} record has invalid value for field {field.name}.")
        if record._initialized:
            record._cache.clear()
        record._value[field.name] = effective
        self._model.records.invalidate()

    def _is_relationship_field(self, name: str) -> bool:
        # Relationships are stored under "<relationship>.<attribute>"; for the
        # owning field both parts equal the field name.
        model = self._model
        return name in model.fields and f"{name}.{name}" in model.relationships


def _read_nothing(record: Record, name: str) -> None:
    return None


def _json_default(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _canonical_json(value: object) -> str:
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_json_default
    )


__all__ = ["AccessEngine", "AttributeKind"]
