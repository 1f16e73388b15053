"""
recordstore: in-memory, schema-driven record store.

Purpose
- Package root. Models declare fields, validators, relationships, scopes,
  computed properties and methods; records created against a model are read
  and written only through the model's access engine.

Import boundary
- No side effects at import time (no config loading, no logging setup).
"""

from recordstore.config import StoreConfig, load_config
from recordstore.errors import (
    DefaultValueError,
    DuplicationError,
    RecordNotFoundError,
    RecordStoreError,
    RecordTypeError,
    SchemaLoadError,
    SchemaNameError,
    ValidationError,
    WriteError,
)
from recordstore.model import Model
from recordstore.observability import ModelEventType, configure_logging
from recordstore.records import Record, RecordSet, Relationship, RelationshipKind, relate
from recordstore.registry import ModelRegistry
from recordstore.schema import Field, KeyField
from recordstore.schema.loader import load_schema, parse_schema

__version__ = "0.1.0"

__all__ = [
    "DefaultValueError",
    "DuplicationError",
    "Field",
    "KeyField",
    "Model",
    "ModelEventType",
    "ModelRegistry",
    "Record",
    "RecordNotFoundError",
    "RecordSet",
    "RecordStoreError",
    "RecordTypeError",
    "Relationship",
    "RelationshipKind",
    "SchemaLoadError",
    "SchemaNameError",
    "StoreConfig",
    "ValidationError",
    "WriteError",
    "__version__",
    "configure_logging",
    "load_config",
    "load_schema",
    "parse_schema",
    "relate",
]
