"""Records, their access engine, record collections and relationships."""

from recordstore.records.engine import AccessEngine, AttributeKind
from recordstore.records.record import Record, is_record
from recordstore.records.record_set import RecordSet
from recordstore.records.relationships import Relationship, RelationshipKind, relate

__all__ = [
    "AccessEngine",
    "AttributeKind",
    "Record",
    "RecordSet",
    "Relationship",
    "RelationshipKind",
    "is_record",
    "relate",
]
