"""Unit tests for the validator catalog."""

from __future__ import annotations

import re

import pytest

from recordstore.errors import RecordTypeError
from recordstore.schema.validators import (
    build_field_validators,
    custom,
    in_range,
    integer,
    length,
    max_length,
    maximum,
    min_length,
    minimum,
    regex,
    unique,
)


def _row(**values: object) -> dict[str, object]:
    return dict(values)


def test_unique_compares_against_other_records() -> None:
    check = unique("name")
    assert check(_row(name="a"), [_row(name="b"), _row(name="c")])
    assert not check(_row(name="a"), [_row(name="b"), _row(name="a")])
    assert check(_row(name="a"), [])


def test_length_family() -> None:
    assert length("name", (2, 4))(_row(name="abc"), [])
    assert not length("name", (2, 4))(_row(name="a"), [])
    assert min_length("tags", 1)(_row(tags=["x"]), [])
    assert not max_length("tags", 1)(_row(tags=["x", "y"]), [])


def test_numeric_bounds() -> None:
    assert in_range("age", (0, 10))(_row(age=10), [])
    assert not in_range("age", (0, 10))(_row(age=11), [])
    assert minimum("age", 3)(_row(age=3), [])
    assert not maximum("age", 3)(_row(age=4), [])


def test_integer_rejects_bools_and_fractions() -> None:
    check = integer("count")
    assert check(_row(count=3), [])
    assert check(_row(count=3.0), [])
    assert not check(_row(count=3.5), [])
    assert not check(_row(count=True), [])


def test_regex_accepts_string_or_compiled_pattern() -> None:
    assert regex("code", r"^[A-Z]{3}$")(_row(code="ABC"), [])
    assert not regex("code", re.compile(r"^[A-Z]{3}$"))(_row(code="abc"), [])


def test_custom_receives_value_and_other_values() -> None:
    seen: list[tuple[object, list[object]]] = []

    def record_call(value: object, others: list[object]) -> bool:
        seen.append((value, others))
        return True

    assert custom("name", record_call)(_row(name="a"), [_row(name="b")])
    assert seen == [("a", ["b"])]


def test_build_field_validators_names_entries_after_the_field() -> None:
    bound = build_field_validators(
        "age",
        {"range": (0, 120), "integer": True, "unique": False, "even": lambda value, _: value % 2 == 0},
    )
    assert list(bound) == ["age_range", "age_integer", "age_even"]
    assert bound["age_even"](_row(age=4), [])
    assert not bound["age_even"](_row(age=5), [])


def test_build_field_validators_rejects_unknown_and_malformed_entries() -> None:
    with pytest.raises(RecordTypeError, match="unknown validator"):
        build_field_validators("age", {"positive": True})
    with pytest.raises(RecordTypeError, match="invalid arguments"):
        build_field_validators("age", {"range": (10, 1)})
    with pytest.raises(RecordTypeError, match="invalid arguments"):
        build_field_validators("code", {"regex": "("})
    with pytest.raises(RecordTypeError):
        build_field_validators("age", ["unique"])  # type: ignore[arg-type]


def test_build_field_validators_accepts_none() -> None:
    assert build_field_validators("age", None) == {}
