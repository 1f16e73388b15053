"""Model: schema authority and owner of a record collection.

A model holds field definitions, the identity key, methods, computed
properties, scopes, model-level validators and relationships, and hands every
record access to its ``AccessEngine``. Structural and record changes are
announced on the model's ``ModelEventBus``.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import structlog

from recordstore.config.schema import StoreConfig
from recordstore.errors import (
    DuplicationError,
    RecordNotFoundError,
    RecordTypeError,
    SchemaNameError,
    WriteError,
)
from recordstore.observability.events import ModelEventBus, ModelEventType, Subscriber
from recordstore.observability.logging import model_context
from recordstore.records.engine import AccessEngine
from recordstore.records.record import Record
from recordstore.records.record_set import RecordSet, ScopePredicate
from recordstore.schema.field import CUSTOM_TYPE, MISSING, Field, KeyField, build_field, build_key
from recordstore.schema.names import validate_name
from recordstore.schema.validators import ModelValidator

if TYPE_CHECKING:
    from recordstore.records.relationships import Relationship
    from recordstore.registry import ModelRegistry

Method = Callable[..., Any]
Property = Callable[[Record], Any]

_log = structlog.get_logger(__name__)


class Model:
    """Declarative schema plus the records created against it."""

    def __init__(
        self,
        name: str,
        *,
        key: str | Mapping[str, object] = "id",
        fields: Iterable[Field | Mapping[str, object]] = (),
        methods: Mapping[str, Method] | None = None,
        properties: Mapping[str, Property] | None = None,
        cached_properties: Iterable[str] = (),
        scopes: Mapping[str, ScopePredicate] | None = None,
        validators: Mapping[str, ModelValidator] | None = None,
        registry: ModelRegistry | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        self._name = validate_name("Model", name)
        if registry is not None and self._name in registry:
            raise DuplicationError(f"A model named {self._name} already exists.")

        self._config = config if config is not None else (
            registry.config if registry is not None else StoreConfig()
        )
        self._events = ModelEventBus(self._name, buffer_size=self._config.event_buffer_size)
        # Records and the engine exist before any field so retrofill can run.
        self._records = RecordSet()
        self._engine = AccessEngine(self)
        self._key: KeyField = build_key(self._name, key)

        self._fields: dict[str, Field] = {}
        self._methods: dict[str, Method] = {}
        self._properties: dict[str, Property] = {}
        self._cached_properties: set[str] = set()
        self._relationships: dict[str, Relationship] = {}
        self._validators: dict[str, ModelValidator] = {}

        cached = set(cached_properties)
        for field in fields:
            self.add_field(field)
        for method_name, method in (methods or {}).items():
            self.add_method(method_name, method)
        for property_name, compute in (properties or {}).items():
            self.add_property(property_name, compute, cache=property_name in cached)
        unknown_cached = sorted(cached - set(self._properties))
        if unknown_cached:
            raise SchemaNameError(f"{self._name} cached properties are not defined: {unknown_cached}")
        for scope_name, predicate in (scopes or {}).items():
            self.add_scope(scope_name, predicate)
        for validator_name, validator in (validators or {}).items():
            self.add_validator(validator_name, validator)

        if registry is not None:
            registry.register(self)

    # Read-only schema surface

    @property
    def name(self) -> str:
        return self._name

    @property
    def key(self) -> KeyField:
        return self._key

    @property
    def fields(self) -> Mapping[str, Field]:
        return MappingProxyType(self._fields)

    @property
    def methods(self) -> Mapping[str, Method]:
        return MappingProxyType(self._methods)

    @property
    def properties(self) -> Mapping[str, Property]:
        return MappingProxyType(self._properties)

    @property
    def cached_properties(self) -> frozenset[str]:
        return frozenset(self._cached_properties)

    @property
    def relationships(self) -> Mapping[str, Relationship]:
        return MappingProxyType(self._relationships)

    @property
    def validators(self) -> Mapping[str, ModelValidator]:
        return MappingProxyType(self._validators)

    @property
    def records(self) -> RecordSet:
        return self._records

    @property
    def events(self) -> ModelEventBus:
        return self._events

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def engine(self) -> AccessEngine:
        return self._engine

    def has_attribute(self, name: str) -> bool:
        """Whether ``name`` is taken by the key, a field, a method or a property."""
        return (
            name == self._key.name
            or name in self._fields
            or name in self._methods
            or name in self._properties
        )

    def __repr__(self) -> str:
        return f"Model({self._name!r}, records={len(self._records)})"

    # Events

    def on(self, event_type: str | ModelEventType | None, callback: Subscriber) -> int:
        return self._events.subscribe(event_type, callback)

    def off(self, token: int) -> bool:
        return self._events.unsubscribe(token)

    def _emit(self, event_type: ModelEventType, **payload: Any) -> None:
        self._events.emit(event_type, payload)

    def _emit_change(self, change: ModelEventType, **payload: Any) -> None:
        self._events.emit(ModelEventType.CHANGE, {"type": change.value, **payload})

    # Fields

    def add_field(
        self, field: Field | Mapping[str, object], retrofill: object = MISSING
    ) -> Field:
        """Add a field and retrofill existing records.

        ``retrofill`` may be a callable taking the record, or a value. Without
        one, required fields keep an existing stored value or take the default,
        and optional fields leave records untouched.
        """

        self._emit(ModelEventType.BEFORE_ADD_FIELD, field=field)
        parsed = self._parse_field(field)
        self._insert_field(parsed, retrofill)
        self._emit_change(ModelEventType.FIELD_ADDED, field=parsed)
        return parsed

    def remove_field(self, name: str) -> bool:
        """Remove a field definition. Stored values stay on the records, unexposed."""

        if not self._contains("field", name, self._fields):
            return False
        field = self._fields[name]
        self._emit(ModelEventType.BEFORE_REMOVE_FIELD, field=field)
        del self._fields[name]
        self._relationships.pop(f"{name}.{name}", None)
        self._emit(ModelEventType.FIELD_REMOVED, field=field)
        self._emit_change(ModelEventType.FIELD_REMOVED, field=field)
        return True

    def update_field(
        self, name: str, field: Field | Mapping[str, object], retrofill: object = MISSING
    ) -> Field:
        """Replace the definition of ``name``; emits update events only.

        The new definition is parsed before the old one is dropped, and the old
        one is restored if the replacement fails. Relationship fields keep
        resolving through their relationship.
        """

        new_name = field.name if isinstance(field, Field) else field.get("name")
        if new_name != name:
            raise SchemaNameError(f"Field name {new_name} does not match {name}.")
        previous = self._fields.get(name)
        self._emit(ModelEventType.BEFORE_UPDATE_FIELD, previous=previous, field=field)
        parsed = self._parse_field(field)
        self._fields.pop(name, None)
        try:
            self._insert_field(parsed, retrofill, announce=False)
        except Exception:
            if previous is None:
                self._fields.pop(name, None)
            else:
                self._fields[name] = previous
            raise
        self._emit(ModelEventType.FIELD_UPDATED, field=parsed)
        self._emit_change(ModelEventType.FIELD_UPDATED, field=parsed)
        return parsed

    def _insert_field(self, field: Field, retrofill: object, *, announce: bool = True) -> None:
        self._assert_name_available("Field", field.name)
        self._fields[field.name] = field
        if announce:
            self._emit(ModelEventType.FIELD_ADDED, field=field)

        self._emit(ModelEventType.BEFORE_RETROFILL_FIELD, field=field, retrofill=retrofill)
        self._retrofill(field, retrofill)
        self._emit(ModelEventType.FIELD_RETROFILLED, field=field, retrofill=retrofill)

    def _parse_field(self, field: Field | Mapping[str, object]) -> Field:
        if isinstance(field, Field):
            parsed = field
        elif isinstance(field, Mapping):
            parsed = build_field(field)
        else:
            raise RecordTypeError(f"{self._name} field {field!r} is not a Field or a mapping.")
        if isinstance(parsed, KeyField):
            raise RecordTypeError(f"{self._name} key fields cannot be added as regular fields.")
        if parsed.type_name == CUSTOM_TYPE:
            self._report_experimental(parsed.name)
        return parsed

    def _report_experimental(self, field_name: str) -> None:
        policy = self._config.experimental_api_messages
        if policy == "error":
            raise RecordTypeError(
                f"The provided type for {field_name} is not part of the standard types."
            )
        if policy == "warn":
            _log.warning(
                "experimental_field_type",
                model=self._name,
                field=field_name,
                detail="callable field types are experimental and may be removed",
            )

    def _retrofill(self, field: Field, retrofill: object) -> None:
        if retrofill is MISSING and not field.required:
            return
        if retrofill is MISSING:

            def fill(record: Record) -> object:
                existing = record.__record_value__.get(field.name)
                return existing if existing is not None else field.resolve_default()

        elif callable(retrofill):
            fill = retrofill
        else:

            def fill(record: Record) -> object:
                return copy.deepcopy(retrofill)

        for record in self._records:
            self._engine.set(record, field.name, fill(record))

    # Methods, properties, scopes, validators

    def add_method(self, name: str, method: Method) -> None:
        self._emit(ModelEventType.BEFORE_ADD_METHOD, method=name, body=method)
        method_name = validate_name("Method", name)
        self._assert_callable("Method", method_name, method)
        self._assert_name_available("Method", method_name)
        self._methods[method_name] = method
        self._emit(ModelEventType.METHOD_ADDED, method=method_name, body=method)
        self._emit_change(ModelEventType.METHOD_ADDED, method=method_name, body=method)

    def remove_method(self, name: str) -> bool:
        if not self._contains("method", name, self._methods):
            return False
        method = self._methods[name]
        self._emit(ModelEventType.BEFORE_REMOVE_METHOD, method=name, body=method)
        del self._methods[name]
        self._emit(ModelEventType.METHOD_REMOVED, method=name)
        self._emit_change(ModelEventType.METHOD_REMOVED, method=name, body=method)
        return True

    def add_property(self, name: str, compute: Property, *, cache: bool = False) -> None:
        """Add a computed property; ``cache=True`` memoizes it per record until a write."""

        self._emit(ModelEventType.BEFORE_ADD_PROPERTY, property=name, body=compute)
        property_name = validate_name("Property", name)
        self._assert_callable("Property", property_name, compute)
        self._assert_name_available("Property", property_name)
        self._properties[property_name] = compute
        if cache:
            self._cached_properties.add(property_name)
        self._emit(ModelEventType.PROPERTY_ADDED, property=property_name, cache=cache)
        self._emit_change(ModelEventType.PROPERTY_ADDED, property=property_name, cache=cache)

    def remove_property(self, name: str) -> bool:
        if not self._contains("property", name, self._properties):
            return False
        compute = self._properties[name]
        self._emit(ModelEventType.BEFORE_REMOVE_PROPERTY, property=name, body=compute)
        del self._properties[name]
        self._cached_properties.discard(name)
        self._engine.discard_cached(name)
        # Reverse relationship properties are stored as "<relationship>.<property>".
        reverse_keys = [
            key
            for key, relationship in self._relationships.items()
            if key == f"{relationship.name}.{name}"
        ]
        for key in reverse_keys:
            del self._relationships[key]
        self._emit(ModelEventType.PROPERTY_REMOVED, property=name)
        self._emit_change(ModelEventType.PROPERTY_REMOVED, property=name)
        return True

    def add_scope(self, name: str, predicate: ScopePredicate) -> None:
        self._emit(ModelEventType.BEFORE_ADD_SCOPE, scope=name, body=predicate)
        scope_name = validate_name("Scope", name)
        self._records.add_scope(scope_name, predicate)
        self._emit(ModelEventType.SCOPE_ADDED, scope=scope_name, body=predicate)
        self._emit_change(ModelEventType.SCOPE_ADDED, scope=scope_name, body=predicate)

    def remove_scope(self, name: str) -> bool:
        if not self._records.has_scope(name):
            _log.warning("missing_schema_member", model=self._name, kind="scope", name=name)
            return False
        self._emit(ModelEventType.BEFORE_REMOVE_SCOPE, scope=name)
        self._records.remove_scope(name)
        self._emit(ModelEventType.SCOPE_REMOVED, scope=name)
        self._emit_change(ModelEventType.SCOPE_REMOVED, scope=name)
        return True

    def add_validator(self, name: str, validator: ModelValidator) -> None:
        """Add a model-level validator called as ``validator(record, others)``."""

        self._emit(ModelEventType.BEFORE_ADD_VALIDATOR, validator=name, body=validator)
        validator_name = validate_name("Validator", name)
        self._assert_callable("Validator", validator_name, validator)
        if validator_name in self._validators:
            raise DuplicationError(f"Validator {validator_name} already exists.")
        self._validators[validator_name] = validator
        self._emit(ModelEventType.VALIDATOR_ADDED, validator=validator_name)
        self._emit_change(ModelEventType.VALIDATOR_ADDED, validator=validator_name)

    def remove_validator(self, name: str) -> bool:
        if not self._contains("validator", name, self._validators):
            return False
        self._emit(ModelEventType.BEFORE_REMOVE_VALIDATOR, validator=name)
        del self._validators[name]
        self._emit(ModelEventType.VALIDATOR_REMOVED, validator=name)
        self._emit_change(ModelEventType.VALIDATOR_REMOVED, validator=name)
        return True

    # Relationships

    def add_relationship_field(self, name: str, field: Field, relationship: Relationship) -> None:
        """Install the forward side of ``relationship`` as field ``name``."""

        self._emit(ModelEventType.BEFORE_ADD_RELATIONSHIP, relationship=name, kind=relationship.kind)
        self._assert_name_available("Relationship field", name)
        relationship_key = f"{relationship.name}.{name}"
        if relationship_key in self._relationships:
            raise DuplicationError(f"Relationship {relationship.name} is already in use.")
        self._fields[name] = field
        self._relationships[relationship_key] = relationship
        self._emit(ModelEventType.RELATIONSHIP_ADDED, relationship=name, kind=relationship.kind)
        self._emit_change(ModelEventType.RELATIONSHIP_ADDED, relationship=name, kind=relationship.kind)

    def add_relationship_property(self, name: str, relationship: Relationship) -> None:
        """Install the reverse side of ``relationship`` as uncached property ``name``."""

        self._emit(ModelEventType.BEFORE_ADD_RELATIONSHIP, relationship=name, kind=relationship.kind)
        self._assert_name_available("Relationship property", name)
        relationship_key = f"{relationship.name}.{name}"
        if relationship_key in self._relationships:
            raise DuplicationError(f"Relationship {relationship.name} is already in use.")
        self._properties[name] = relationship.reverse_property
        self._relationships[relationship_key] = relationship
        self._emit(ModelEventType.RELATIONSHIP_ADDED, relationship=name, kind=relationship.kind)
        self._emit_change(ModelEventType.RELATIONSHIP_ADDED, relationship=name, kind=relationship.kind)

    # Records

    def create_record(self, data: Mapping[str, object]) -> Record:
        """Validate and insert a new record; a failure leaves the collection unchanged."""

        with model_context(model=self._name):
            identity, record = self._engine.create_record(data)
            self._records.insert(identity, record)
            _log.debug("record_created", identity=identity)
        self._emit(ModelEventType.RECORD_CREATED, identity=identity, record=record)
        self._emit_change(ModelEventType.RECORD_CREATED, identity=identity, record=record)
        return record

    def remove_record(self, identity: object) -> bool:
        if identity not in self._records:
            _log.warning("missing_record", model=self._name, identity=identity)
            return False
        record = self._records[identity]
        self._records.remove(identity)
        _log.debug("record_removed", model=self._name, identity=identity)
        self._emit(ModelEventType.RECORD_REMOVED, identity=identity, record=record)
        self._emit_change(ModelEventType.RECORD_REMOVED, identity=identity, record=record)
        return True

    def update_record(self, identity: object, data: Mapping[str, object]) -> Record:
        """Write each entry of ``data`` to an existing record, then run model validators once.

        Like single writes, updates are not transactional.
        """

        record = self._records.get(identity)
        if record is None:
            raise RecordNotFoundError(f"{self._name} record with id {identity!r} does not exist.")
        if not isinstance(data, Mapping):
            raise RecordTypeError(f"{self._name} record update data must be a mapping.")

        key_name = self._key.name
        if key_name in data and data[key_name] != identity:
            raise WriteError(f"{self._name} record {identity!r} cannot reassign key {key_name}.")

        changes = copy.deepcopy({name: value for name, value in data.items() if name != key_name})
        with model_context(model=self._name):
            for name, value in changes.items():
                self._engine.set(record, name, value, bulk_load=True)
            self._engine.run_model_validators(record)
            _log.debug("record_updated", identity=identity, fields=sorted(changes))
        self._emit(ModelEventType.RECORD_UPDATED, identity=identity, record=record, fields=tuple(changes))
        self._emit_change(ModelEventType.RECORD_UPDATED, identity=identity, record=record)
        return record

    # Helpers

    def _assert_name_available(self, kind: str, name: str) -> None:
        if self.has_attribute(name):
            raise DuplicationError(f"{kind} {name} already exists in {self._name}.")

    @staticmethod
    def _assert_callable(kind: str, name: str, value: object) -> None:
        if not callable(value):
            raise RecordTypeError(f"{kind} {name} is not callable.")

    def _contains(self, kind: str, name: str, members: Mapping[str, object]) -> bool:
        if name not in members:
            _log.warning("missing_schema_member", model=self._name, kind=kind, name=name)
            return False
        return True


__all__ = ["Method", "Model", "Property"]
