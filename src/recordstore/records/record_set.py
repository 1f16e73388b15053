"""Insertion-ordered record collection with named scope views."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from recordstore.errors import DuplicationError, RecordTypeError, SchemaNameError
from recordstore.records.record import Record
from recordstore.schema.names import validate_name

ScopePredicate = Callable[[Record], object]


class RecordSet:
    """Records keyed by identity, in insertion order.

    Scopes are named predicates; ``scope(name)`` (or ``records.<name>``)
    returns the matching subset, cached until the collection changes. Derived
    sets returned by ``where`` and ``scope`` are read-only and carry no scopes.
    """

    __slots__ = ("_records", "_scopes", "_scope_views", "_read_only")

    def __init__(
        self,
        records: Iterable[tuple[Any, Record]] = (),
        *,
        read_only: bool = False,
    ) -> None:
        self._records: dict[Any, Record] = dict(records)
        self._scopes: dict[str, ScopePredicate] = {}
        self._scope_views: dict[str, RecordSet] = {}
        self._read_only = read_only

    # Mapping surface

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identity: object) -> bool:
        try:
            return identity in self._records
        except TypeError:
            return False

    def __iter__(self) -> Iterator[Record]:
        return iter(tuple(self._records.values()))

    def __getitem__(self, identity: Any) -> Record:
        return self._records[identity]

    def __getattr__(self, name: str) -> RecordSet:
        if not name.startswith("_"):
            try:
                scopes = object.__getattribute__(self, "_scopes")
            except AttributeError:
                scopes = {}
            if name in scopes:
                return self.scope(name)
        raise AttributeError(f"{type(self).__name__} has no attribute or scope {name!r}")

    def __repr__(self) -> str:
        return f"RecordSet(size={len(self._records)}, scopes={sorted(self._scopes)})"

    @property
    def size(self) -> int:
        return len(self._records)

    @property
    def read_only(self) -> bool:
        return self._read_only

    def has(self, identity: Any) -> bool:
        return identity in self

    def get(self, identity: Any, default: Record | None = None) -> Record | None:
        return self._records.get(identity, default)

    def ids(self) -> tuple[Any, ...]:
        return tuple(self._records)

    @property
    def first(self) -> Record | None:
        return next(iter(self._records.values()), None)

    @property
    def last(self) -> Record | None:
        return next(reversed(self._records.values()), None)

    # Mutation

    def insert(self, identity: Any, record: Record) -> None:
        self._assert_writable()
        if identity in self._records:
            raise DuplicationError(f"record with id {identity!r} already exists.")
        self._records[identity] = record
        self.invalidate()

    def remove(self, identity: Any) -> bool:
        self._assert_writable()
        if identity not in self._records:
            return False
        del self._records[identity]
        self.invalidate()
        return True

    def invalidate(self) -> None:
        """Drop cached scope views; they are rebuilt on next access."""
        self._scope_views.clear()

    # Queries

    def excluding(self, identity: Any) -> tuple[Record, ...]:
        """Every record except the one stored under ``identity``, in order."""
        return tuple(record for key, record in self._records.items() if key != identity)

    def where(self, predicate: ScopePredicate) -> RecordSet:
        return RecordSet(
            ((key, record) for key, record in self._records.items() if predicate(record)),
            read_only=True,
        )

    def pluck(self, *names: str) -> list[Any]:
        """Field values per record; a single name yields a flat list."""
        if len(names) == 1:
            return [record[names[0]] for record in self._records.values()]
        return [[record[name] for name in names] for record in self._records.values()]

    def to_list(self, *, include: Iterable[str] = ()) -> list[dict[str, Any]]:
        include = tuple(include)
        return [record.to_dict(include=include) for record in self._records.values()]

    # Scopes

    @property
    def scope_names(self) -> tuple[str, ...]:
        return tuple(self._scopes)

    def has_scope(self, name: str) -> bool:
        return name in self._scopes

    def add_scope(self, name: str, predicate: ScopePredicate) -> None:
        self._assert_writable()
        scope_name = validate_name("Scope", name)
        if hasattr(RecordSet, scope_name):
            raise SchemaNameError(f"Scope name {scope_name!r} is reserved by RecordSet.")
        if not callable(predicate):
            raise RecordTypeError(f"Scope {scope_name} is not callable.")
        if scope_name in self._scopes:
            raise DuplicationError(f"Scope {scope_name} already exists.")
        self._scopes[scope_name] = predicate
        self._scope_views.pop(scope_name, None)

    def remove_scope(self, name: str) -> bool:
        self._assert_writable()
        if name not in self._scopes:
            return False
        del self._scopes[name]
        self._scope_views.pop(name, None)
        return True

    def scope(self, name: str) -> RecordSet:
        view = self._scope_views.get(name)
        if view is None:
            predicate = self._scopes.get(name)
            if predicate is None:
                raise KeyError(f"unknown scope {name!r}")
            view = self.where(predicate)
            self._scope_views[name] = view
        return view

    def _assert_writable(self) -> None:
        if self._read_only:
            raise RecordTypeError("derived record sets are read-only.")


__all__ = ["RecordSet", "ScopePredicate"]
