"""Field definitions, type predicates, name rules and the validator catalog.

The YAML loader lives in ``recordstore.schema.loader`` and is not imported
here, since it depends on ``recordstore.model``.
"""

from recordstore.schema.field import (
    MISSING,
    Field,
    IdentityCounter,
    KeyField,
    build_field,
    build_key,
)
from recordstore.schema.names import RESERVED_NAMES, validate_name
from recordstore.schema.types import STANDARD_TYPES, StandardType
from recordstore.schema.validators import VALIDATOR_CATALOG, build_field_validators

__all__ = [
    "MISSING",
    "RESERVED_NAMES",
    "STANDARD_TYPES",
    "VALIDATOR_CATALOG",
    "Field",
    "IdentityCounter",
    "KeyField",
    "StandardType",
    "build_field",
    "build_field_validators",
    "build_key",
    "validate_name",
]
