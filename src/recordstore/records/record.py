"""Record value holder. Every attribute access is forwarded to the access engine."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from recordstore.records.engine import AccessEngine

IS_RECORD: Final[str] = "__is_record__"
RECORD_MODEL: Final[str] = "__record_model__"
RECORD_VALUE: Final[str] = "__record_value__"
RECORD_TAG: Final[str] = "__record_tag__"

MARKERS: Final[frozenset[str]] = frozenset({IS_RECORD, RECORD_MODEL, RECORD_VALUE, RECORD_TAG})


class Record:
    """A keyed, mutable field mapping exposed only through its ``AccessEngine``.

    ``record.name`` and ``record["name"]`` read through the engine and
    ``record.name = value`` writes through it. The slots below are engine-owned
    state and are never written from outside ``recordstore.records``.
    """

    __slots__ = ("_engine", "_value", "_cache", "_initialized")

    def __init__(self, engine: AccessEngine, value: dict[str, Any]) -> None:
        object.__setattr__(self, "_engine", engine)
        object.__setattr__(self, "_value", value)
        object.__setattr__(self, "_cache", {})
        object.__setattr__(self, "_initialized", False)

    def __getattr__(self, name: str) -> Any:
        # Only reached when regular lookup fails, i.e. for schema attributes.
        if name.startswith("_") and name not in MARKERS:
            raise AttributeError(name)
        return self._engine.get(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        self._engine.set(self, name, value)

    def __delattr__(self, name: str) -> None:
        self._engine.set(self, name, None)

    def __getitem__(self, name: str) -> Any:
        return self._engine.get(self, name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._engine.set(self, name, value)

    def __iter__(self) -> Iterator[str]:
        model = self._engine.model
        yield model.key.name
        yield from model.fields

    def __str__(self) -> str:
        return str(self._engine.get(self, "to_string")())

    def __repr__(self) -> str:
        return f"<Record {self._engine.get(self, RECORD_TAG)}>"


def is_record(value: object) -> bool:
    return isinstance(value, Record)


__all__ = [
    "IS_RECORD",
    "MARKERS",
    "RECORD_MODEL",
    "RECORD_TAG",
    "RECORD_VALUE",
    "Record",
    "is_record",
]
