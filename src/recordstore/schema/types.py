"""Type predicate catalog for field definitions."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from types import MappingProxyType
from typing import Final

TypePredicate = Callable[[object], bool]

_EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=UTC)


def is_boolean(value: object) -> bool:
    return isinstance(value, bool)


def is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def is_string(value: object) -> bool:
    return isinstance(value, str)


def is_date(value: object) -> bool:
    return isinstance(value, date)


def is_non_empty_string(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_non_negative_integer(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def all_of(*predicates: TypePredicate) -> TypePredicate:
    """Combine predicates so that every one of them must accept the value."""

    def check(value: object) -> bool:
        return all(predicate(value) for predicate in predicates)

    return check


def any_of(*predicates: TypePredicate) -> TypePredicate:
    """Combine predicates so that at least one of them must accept the value."""

    def check(value: object) -> bool:
        return any(predicate(value) for predicate in predicates)

    return check


def array_of(predicate: TypePredicate) -> TypePredicate:
    """Accept lists or tuples whose items all satisfy ``predicate``."""

    def check(value: object) -> bool:
        return isinstance(value, (list, tuple)) and all(predicate(item) for item in value)

    return check


def one_of(*values: object) -> TypePredicate:
    """Membership predicate for enumerated values."""

    allowed = tuple(values)

    def check(value: object) -> bool:
        return any(
            value == item and isinstance(value, bool) == isinstance(item, bool) for item in allowed
        )

    return check


def optional(predicate: TypePredicate) -> TypePredicate:
    return any_of(lambda value: value is None, predicate)


record_id: Final[TypePredicate] = all_of(is_string, is_non_empty_string)


@dataclass(frozen=True, slots=True)
class StandardType:
    """A named predicate with the default used by its ``*_required`` variant."""

    name: str
    predicate: TypePredicate
    default: object


def _standard_types() -> Mapping[str, StandardType]:
    scalars: tuple[tuple[str, TypePredicate, object], ...] = (
        ("boolean", is_boolean, False),
        ("number", is_number, 0),
        ("string", is_string, ""),
        ("date", is_date, _EPOCH),
    )
    catalog: dict[str, StandardType] = {}
    for name, predicate, default in scalars:
        catalog[name] = StandardType(name=name, predicate=predicate, default=default)
    for name, predicate, _ in scalars:
        array_name = f"{name}_array"
        catalog[array_name] = StandardType(name=array_name, predicate=array_of(predicate), default=[])
    return MappingProxyType(catalog)


STANDARD_TYPES: Final[Mapping[str, StandardType]] = _standard_types()


__all__ = [
    "STANDARD_TYPES",
    "StandardType",
    "TypePredicate",
    "all_of",
    "any_of",
    "array_of",
    "is_boolean",
    "is_date",
    "is_non_empty_string",
    "is_non_negative_integer",
    "is_number",
    "is_string",
    "one_of",
    "optional",
    "record_id",
]
