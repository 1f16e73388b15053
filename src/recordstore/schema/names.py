"""Name rules for models, fields, methods, properties, and scopes."""

from __future__ import annotations

import re
from typing import Final, cast

from recordstore.errors import SchemaNameError

_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

RESERVED_NAMES: Final[frozenset[str]] = frozenset(
    {"to_string", "to_object", "to_dict", "to_json"}
)


def name_problem(name: object) -> str | None:
    """Return why ``name`` is unusable, or ``None`` when it is valid."""

    if not isinstance(name, str):
        return "must be a string"
    if not name:
        return "cannot be empty"
    if name[0].isdigit():
        return "cannot start with a number"
    if name in RESERVED_NAMES:
        return "is reserved"
    if not _NAME_PATTERN.match(name):
        return "must start with a letter and contain only letters, numbers or underscores"
    return None


def validate_name(kind: str, name: object) -> str:
    """Return ``name`` unchanged or raise ``SchemaNameError``."""

    problem = name_problem(name)
    if problem is not None:
        raise SchemaNameError(f"{kind} name {name!r} is invalid - {problem}.")
    return cast("str", name)


__all__ = ["RESERVED_NAMES", "name_problem", "validate_name"]
