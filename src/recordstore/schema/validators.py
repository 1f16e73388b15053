"""Validator catalog: predicate factories bound to a single field.

Every factory returns a callable ``(record, others) -> bool``. ``record`` is the
record being validated and ``others`` are the remaining records of the same
collection. Both are read by item access (``record[field]``).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Final, Protocol

from recordstore.errors import RecordTypeError


class RecordLike(Protocol):
    def __getitem__(self, name: str) -> Any: ...


FieldValidator = Callable[[RecordLike, Iterable[RecordLike]], bool]
ModelValidator = Callable[[Any, tuple[Any, ...]], bool]


def unique(field: str) -> FieldValidator:
    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        value = record[field]
        return all(other[field] != value for other in others)

    return check


def length(field: str, bounds: tuple[int, int]) -> FieldValidator:
    minimum_length, maximum_length = _as_bounds(bounds, "length")

    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return minimum_length <= len(record[field]) <= maximum_length

    return check


def min_length(field: str, minimum_length: int) -> FieldValidator:
    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return len(record[field]) >= minimum_length

    return check


def max_length(field: str, maximum_length: int) -> FieldValidator:
    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return len(record[field]) <= maximum_length

    return check


def in_range(field: str, bounds: tuple[float, float]) -> FieldValidator:
    lower, upper = _as_bounds(bounds, "range")

    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return lower <= record[field] <= upper

    return check


def minimum(field: str, lower: float) -> FieldValidator:
    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return record[field] >= lower

    return check


def maximum(field: str, upper: float) -> FieldValidator:
    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return record[field] <= upper

    return check


def integer(field: str) -> FieldValidator:
    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        value = record[field]
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return isinstance(value, float) and value.is_integer()

    return check


def regex(field: str, pattern: str | re.Pattern[str]) -> FieldValidator:
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern

    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return compiled.search(str(record[field])) is not None

    return check


def custom(field: str, fn: Callable[[Any, list[Any]], object]) -> FieldValidator:
    """Wrap ``fn(value, other_values)`` as a field validator."""

    if not callable(fn):
        raise RecordTypeError(f"custom validator for {field} is not callable.")

    def check(record: RecordLike, others: Iterable[RecordLike]) -> bool:
        return bool(fn(record[field], [other[field] for other in others]))

    return check


def _flag(factory: Callable[[str], FieldValidator]) -> Callable[[str, object], FieldValidator | None]:
    def bind(field: str, argument: object) -> FieldValidator | None:
        return factory(field) if argument else None

    return bind


def _with_argument(
    factory: Callable[[str, Any], FieldValidator],
) -> Callable[[str, object], FieldValidator | None]:
    def bind(field: str, argument: object) -> FieldValidator | None:
        return factory(field, argument)

    return bind


VALIDATOR_CATALOG: Final[Mapping[str, Callable[[str, object], FieldValidator | None]]] = {
    "unique": _flag(unique),
    "integer": _flag(integer),
    "length": _with_argument(length),
    "min_length": _with_argument(min_length),
    "max_length": _with_argument(max_length),
    "range": _with_argument(in_range),
    "min": _with_argument(minimum),
    "max": _with_argument(maximum),
    "regex": _with_argument(regex),
    "custom": _with_argument(custom),
}


def build_field_validators(
    field_name: str, declared: Mapping[str, object] | None
) -> dict[str, FieldValidator]:
    """Bind catalog entries and named callables in ``declared`` to ``field_name``.

    Validators are named ``<field>_<entry>`` so a failure reads as
    ``name_unique`` or ``age_range``.
    """

    if declared is None:
        return {}
    if not isinstance(declared, Mapping):
        raise RecordTypeError(f"Field {field_name} validators must be a mapping.")

    bound: dict[str, FieldValidator] = {}
    for entry, argument in declared.items():
        if not isinstance(entry, str) or not entry:
            raise RecordTypeError(f"Field {field_name} has an invalid validator name {entry!r}.")
        validator_name = f"{field_name}_{entry}"
        binder = VALIDATOR_CATALOG.get(entry)
        if binder is not None:
            try:
                validator = binder(field_name, argument)
            except (TypeError, ValueError, re.error) as exc:
                raise RecordTypeError(
                    f"Field {field_name} validator {entry} has invalid arguments: {exc}"
                ) from exc
            if validator is not None:
                bound[validator_name] = validator
            continue
        if callable(argument):
            bound[validator_name] = custom(field_name, argument)
            continue
        raise RecordTypeError(f"Field {field_name} has an unknown validator {entry!r}.")
    return bound


def _as_bounds(bounds: object, label: str) -> tuple[Any, Any]:
    if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
        raise ValueError(f"{label} bounds must be a (min, max) pair")
    lower, upper = bounds
    if lower > upper:
        raise ValueError(f"{label} minimum {lower!r} is greater than maximum {upper!r}")
    return lower, upper


__all__ = [
    "VALIDATOR_CATALOG",
    "FieldValidator",
    "ModelValidator",
    "RecordLike",
    "build_field_validators",
    "custom",
    "in_range",
    "integer",
    "length",
    "max_length",
    "maximum",
    "min_length",
    "minimum",
    "regex",
    "unique",
]
