"""Field definitions, identity key fields, and the standard field factory."""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Final, Literal

from recordstore.errors import DefaultValueError, RecordTypeError
from recordstore.schema.names import validate_name
from recordstore.schema.types import (
    STANDARD_TYPES,
    TypePredicate,
    is_non_negative_integer,
    one_of,
    record_id,
)
from recordstore.schema.validators import FieldValidator, build_field_validators

KeyType = Literal["string", "auto"]


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final[Any] = _Missing()

CUSTOM_TYPE: Final[str] = "custom"


class IdentityCounter:
    """Monotonic per-model counter backing ``auto`` identity keys."""

    __slots__ = ("_next",)

    def __init__(self, start: int = 0) -> None:
        if not is_non_negative_integer(start):
            raise RecordTypeError(f"identity counter start must be a non-negative integer, got {start!r}")
        self._next = start

    def next(self) -> int:
        """Return the next identity and advance the counter."""
        value = self._next
        self._next += 1
        return value


class Field:
    """One attribute of a model: type predicate, requiredness, default, validators."""

    __slots__ = ("name", "required", "type_name", "validators", "_predicate", "_default")

    # Key fields opt out of the construction-time default check.
    _requires_default: bool = True

    def __init__(
        self,
        name: str,
        type: TypePredicate | str,
        *,
        required: bool = False,
        default: object = MISSING,
        validators: Mapping[str, object] | None = None,
    ) -> None:
        self.name = validate_name("Field", name)
        if not isinstance(required, bool):
            raise RecordTypeError(f"Field {name} required flag must be a boolean.")
        self.required = required
        self._predicate, self.type_name = _resolve_type(name, type)
        self._default = default
        self.validators: dict[str, FieldValidator] = build_field_validators(name, validators)

        if required and self._requires_default:
            if default is MISSING or default is None:
                raise DefaultValueError(f"Field {name} is required and has no default value.")
            if not self.type_check(self.resolve_default()):
                raise DefaultValueError(f"Field {name} default value is invalid.")
        elif default is not MISSING and default is not None and not callable(default):
            if not self.type_check(default):
                raise DefaultValueError(f"Field {name} default value is invalid.")

    @property
    def has_default(self) -> bool:
        return self._default is not MISSING and self._default is not None

    def type_check(self, value: object) -> bool:
        """``None`` is valid exactly when the field is optional."""
        if value is None:
            return not self.required
        return bool(self._predicate(value))

    def resolve_default(self) -> object:
        """Return a fresh default; ``None`` when the field has none."""
        default = self._default
        if default is MISSING:
            return None
        if callable(default):
            return default()
        return copy.deepcopy(default)

    def __repr__(self) -> str:
        flag = ", required" if self.required else ""
        return f"Field({self.name!r}, {self.type_name!r}{flag})"

    # Standard factories, bound below the class body.
    boolean: Callable[..., Field]
    boolean_required: Callable[..., Field]
    number: Callable[..., Field]
    number_required: Callable[..., Field]
    string: Callable[..., Field]
    string_required: Callable[..., Field]
    date: Callable[..., Field]
    date_required: Callable[..., Field]
    boolean_array: Callable[..., Field]
    boolean_array_required: Callable[..., Field]
    number_array: Callable[..., Field]
    number_array_required: Callable[..., Field]
    string_array: Callable[..., Field]
    string_array_required: Callable[..., Field]
    date_array: Callable[..., Field]
    date_array_required: Callable[..., Field]

    @classmethod
    def enum(
        cls,
        name: str,
        values: Sequence[object],
        *,
        default: object = MISSING,
        validators: Mapping[str, object] | None = None,
    ) -> Field:
        """Membership field; defaults to the first declared value."""
        return _build_enum(cls, name, values, required=False, default=default, validators=validators)

    @classmethod
    def enum_required(
        cls,
        name: str,
        values: Sequence[object],
        *,
        default: object = MISSING,
        validators: Mapping[str, object] | None = None,
    ) -> Field:
        return _build_enum(cls, name, values, required=True, default=default, validators=validators)

    @classmethod
    def auto(cls, name: str, counter: IdentityCounter | None = None) -> KeyField:
        return KeyField(name, "auto", counter=counter)


class KeyField(Field):
    """Identity field: a non-empty string key or an auto-incrementing integer key."""

    __slots__ = ("key_type", "counter")

    _requires_default = False

    def __init__(self, name: str, key_type: KeyType = "string", *, counter: IdentityCounter | None = None) -> None:
        if key_type == "string":
            predicate: TypePredicate = record_id
        elif key_type == "auto":
            predicate = is_non_negative_integer
        else:
            raise RecordTypeError(f"Key {name} type must be either 'string' or 'auto'.")
        super().__init__(name, predicate, required=True)
        self.type_name = key_type
        self.key_type: KeyType = key_type
        self.counter: IdentityCounter | None = (
            (counter if counter is not None else IdentityCounter()) if key_type == "auto" else None
        )

    @property
    def is_auto(self) -> bool:
        return self.key_type == "auto"

    def resolve_default(self) -> object:
        if self.counter is None:
            raise DefaultValueError(f"Key field {self.name} does not have a default value.")
        return self.counter.next()


def build_key(model_name: str, key: object) -> KeyField:
    """Parse a model key declaration: a name string or ``{"name", "type"}``."""

    if isinstance(key, str):
        return KeyField(key, "string")
    if not isinstance(key, Mapping):
        raise RecordTypeError(f"{model_name} key {key!r} is not a string or mapping.")
    name = key.get("name")
    if not name:
        raise RecordTypeError(f"{model_name} key {dict(key)!r} is missing a name.")
    key_type = key.get("type", "string")
    if key_type not in ("string", "auto"):
        raise RecordTypeError(f'{model_name} key {name} type must be either "string" or "auto".')
    return KeyField(name, key_type)


def build_field(options: Mapping[str, object]) -> Field:
    """Build a field from a declarative mapping.

    Recognized keys: ``name``, ``type`` (standard tag, ``enum``,
    ``enum_required`` or a predicate callable), ``required``, ``default``,
    ``values`` (enum only) and ``validators``.
    """

    if not isinstance(options, Mapping):
        raise RecordTypeError(f"Field {options!r} is not a mapping.")
    unknown = sorted(set(options) - {"name", "type", "required", "default", "values", "validators"})
    if unknown:
        raise RecordTypeError(f"Field {options.get('name')!r} has unexpected options: {unknown}")

    name = options.get("name")
    type_ = options.get("type")
    default = options.get("default", MISSING)
    validators = options.get("validators")
    if validators is not None and not isinstance(validators, Mapping):
        raise RecordTypeError(f"Field {name!r} validators must be a mapping.")
    required = options.get("required", False)
    if required is True and is_standard_type(type_) and not str(type_).endswith("_required"):
        type_ = f"{type_}_required"

    if type_ in ("enum", "enum_required"):
        values = options.get("values")
        if not isinstance(values, (list, tuple)):
            raise RecordTypeError(f"Field {name!r} enum values must be a list.")
        factory = Field.enum_required if type_ == "enum_required" else Field.enum
        return factory(name, values, default=default, validators=validators)  # type: ignore[arg-type]

    if isinstance(type_, str) and _base_type_name(type_) in STANDARD_TYPES:
        factory = getattr(Field, type_)
        return factory(name, default=default, validators=validators)

    return Field(name, type_, required=required, default=default, validators=validators)  # type: ignore[arg-type]


def is_standard_type(type_: object) -> bool:
    if not isinstance(type_, str):
        return False
    return type_ in ("enum", "enum_required") or _base_type_name(type_) in STANDARD_TYPES


def _base_type_name(type_name: str) -> str:
    return type_name.removesuffix("_required")


def _resolve_type(name: str, type_: object) -> tuple[TypePredicate, str]:
    if isinstance(type_, str):
        standard = STANDARD_TYPES.get(type_)
        if standard is None:
            raise RecordTypeError(f"Field {name} has an unknown type {type_!r}.")
        return standard.predicate, standard.name
    if callable(type_):
        return type_, CUSTOM_TYPE
    raise RecordTypeError(f"Field {name} type must be a standard type name or a predicate.")


def _standard_factory(type_name: str, *, required: bool) -> classmethod[Field, ..., Field]:
    standard = STANDARD_TYPES[type_name]

    def factory(
        cls: type[Field],
        name: str,
        *,
        default: object = MISSING,
        validators: Mapping[str, object] | None = None,
    ) -> Field:
        if required and (default is MISSING or default is None):
            default = standard.default
        field = cls(name, standard.predicate, required=required, default=default, validators=validators)
        field.type_name = f"{type_name}_required" if required else type_name
        return field

    factory.__name__ = f"{type_name}_required" if required else type_name
    return classmethod(factory)


for _type_name in STANDARD_TYPES:
    setattr(Field, _type_name, _standard_factory(_type_name, required=False))
    setattr(Field, f"{_type_name}_required", _standard_factory(_type_name, required=True))
del _type_name


def _build_enum(
    cls: type[Field],
    name: str,
    values: Sequence[object],
    *,
    required: bool,
    default: object,
    validators: Mapping[str, object] | None,
) -> Field:
    if not isinstance(values, (list, tuple)) or not values:
        raise RecordTypeError(f"Field {name} enum values must be a non-empty sequence.")
    if default is MISSING:
        default = values[0]
    field = cls(name, one_of(*values), required=required, default=default, validators=validators)
    field.type_name = "enum_required" if required else "enum"
    return field


__all__ = [
    "CUSTOM_TYPE",
    "MISSING",
    "Field",
    "IdentityCounter",
    "KeyField",
    "KeyType",
    "build_field",
    "build_key",
    "is_standard_type",
]
