"""Error taxonomy shared by the schema layer and the record access engine."""

from __future__ import annotations


class RecordStoreError(Exception):
    """Base class for every error raised by recordstore."""


class RecordTypeError(RecordStoreError, TypeError):
    """Raised for malformed input, invalid identities, and values failing a type check."""


class DefaultValueError(RecordTypeError):
    """Raised when a field cannot supply a default value."""


class ValidationError(RecordStoreError, ValueError):
    """Raised when a named field-level or model-level validator rejects a record."""

    validator_name: str
    identity: object
    model_name: str

    def __init__(self, model_name: str, identity: object, validator_name: str) -> None:
        self.model_name = model_name
        self.identity = identity
        self.validator_name = validator_name
        super().__init__(
            f"{model_name} record with id {identity!r} failed validation for {validator_name}."
        )


class DuplicationError(RecordStoreError, ValueError):
    """Raised on identity collisions and duplicate schema names."""


class WriteError(RecordStoreError, AttributeError):
    """Raised when assigning to a read-only record surface."""


class SchemaNameError(RecordStoreError, ValueError):
    """Raised when a model, field, method, property, or scope name is invalid."""


class RecordNotFoundError(RecordStoreError, KeyError):
    """Raised when an identity does not exist in a model's record collection."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "record not found"


class SchemaLoadError(RecordStoreError, ValueError):
    """Raised when a declarative schema document cannot be loaded."""


__all__ = [
    "DefaultValueError",
    "DuplicationError",
    "RecordNotFoundError",
    "RecordStoreError",
    "RecordTypeError",
    "SchemaLoadError",
    "SchemaNameError",
    "ValidationError",
    "WriteError",
]
