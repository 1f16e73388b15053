"""Bidirectional relationship descriptors between two models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from recordstore.errors import DuplicationError, RecordTypeError
from recordstore.schema.field import Field
from recordstore.schema.names import validate_name

if TYPE_CHECKING:
    from recordstore.model import Model
    from recordstore.records.record import Record


class RelationshipKind(StrEnum):
    """Cardinality read as source -> target."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"

    @property
    def forward_is_many(self) -> bool:
        return self in (RelationshipKind.ONE_TO_MANY, RelationshipKind.MANY_TO_MANY)

    @property
    def reverse_is_many(self) -> bool:
        return self in (RelationshipKind.MANY_TO_ONE, RelationshipKind.MANY_TO_MANY)


class Relationship:
    """Association from ``source.<name>`` to ``target``, reversed as ``target.<reverse_name>``.

    The source field stores target identities: one for to-one kinds, a list for
    to-many kinds. The descriptor is registered on the source under
    ``"<name>.<name>"`` and on the target under ``"<name>.<reverse_name>"``.
    """

    __slots__ = ("source", "target", "name", "reverse_name", "kind")

    def __init__(
        self,
        *,
        source: Model,
        target: Model,
        name: str,
        reverse_name: str,
        kind: RelationshipKind | str = RelationshipKind.MANY_TO_ONE,
    ) -> None:
        try:
            self.kind = RelationshipKind(kind)
        except ValueError as exc:
            raise RecordTypeError(f"Relationship {name} has an unknown kind {kind!r}.") from exc
        self.source = source
        self.target = target
        self.name = validate_name("Relationship", name)
        self.reverse_name = validate_name("Relationship", reverse_name)

    @property
    def forward_key(self) -> str:
        return f"{self.name}.{self.name}"

    @property
    def reverse_key(self) -> str:
        return f"{self.name}.{self.reverse_name}"

    def build_field(self) -> Field:
        """Source field holding target identities, with a reference check."""
        target_key = self.target.key
        if self.kind.forward_is_many:

            def predicate(value: object) -> bool:
                return isinstance(value, (list, tuple)) and all(
                    target_key.type_check(item) for item in value
                )

        else:
            predicate = target_key.type_check
        field = Field(self.name, predicate)
        field.validators[f"{self.name}_references"] = self._references_exist
        return field

    def install(self) -> Relationship:
        """Register the forward field on the source and the reverse property on the target.

        Both names are checked before either model is touched.
        """
        if self.source.has_attribute(self.name):
            raise DuplicationError(f"{self.source.name} already has an attribute named {self.name}.")
        if self.target.has_attribute(self.reverse_name) or (
            self.source is self.target and self.name == self.reverse_name
        ):
            raise DuplicationError(
                f"{self.target.name} already has an attribute named {self.reverse_name}."
            )
        self.source.add_relationship_field(self.name, self.build_field(), self)
        self.target.add_relationship_property(self.reverse_name, self)
        return self

    def resolve(self, model_name: str, attribute: str, record_value: Mapping[str, Any]) -> Any:
        """Related record(s) for the attribute named ``attribute`` on ``model_name``."""
        if model_name == self.source.name and attribute == self.name:
            return self._resolve_forward(record_value.get(self.name))
        if model_name == self.target.name and attribute == self.reverse_name:
            return self.resolve_reverse(record_value[self.target.key.name])
        return None

    def resolve_reverse(self, identity: Any) -> Record | list[Record] | None:
        matches = [
            record
            for record in self.source.records
            if _references(record.__record_value__.get(self.name), identity, self.kind.forward_is_many)
        ]
        if self.kind.reverse_is_many:
            return matches
        return matches[0] if matches else None

    def reverse_property(self, record: Record) -> Record | list[Record] | None:
        return self.resolve_reverse(record.__record_value__[self.target.key.name])

    def _resolve_forward(self, stored: Any) -> Record | list[Record] | None:
        records = self.target.records
        if self.kind.forward_is_many:
            identities: Iterable[Any] = stored if isinstance(stored, (list, tuple)) else ()
            return [records[item] for item in identities if item in records]
        if stored is None or stored not in records:
            return None
        return records[stored]

    def _references_exist(self, record: Record, others: Iterable[Record]) -> bool:
        value = record.__record_value__.get(self.name)
        records = self.target.records
        if self.kind.forward_is_many:
            return isinstance(value, (list, tuple)) and all(item in records for item in value)
        return value in records

    def __repr__(self) -> str:
        return (
            f"Relationship({self.source.name}.{self.name} -> {self.target.name}."
            f"{self.reverse_name}, {self.kind.value})"
        )


def _references(stored: Any, identity: Any, many: bool) -> bool:
    if stored is None:
        return False
    if many:
        return isinstance(stored, (list, tuple)) and identity in stored
    return bool(stored == identity)


def relate(
    source: Model,
    target: Model,
    *,
    name: str,
    reverse_name: str,
    kind: RelationshipKind | str = RelationshipKind.MANY_TO_ONE,
) -> Relationship:
    """Create and install a relationship between two models."""
    return Relationship(
        source=source, target=target, name=name, reverse_name=reverse_name, kind=kind
    ).install()


__all__ = ["Relationship", "RelationshipKind", "relate"]
