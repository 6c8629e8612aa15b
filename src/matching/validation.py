"""Boundary checks for ingestion arguments."""

from typing import Any, List, Sequence

from core.errors import InvalidArgument


def require_identifier(value: Any, what: str = "member_id") -> str:
    """
    Coerce a member id to its canonical string form.

    Integers are accepted (numeric ids are stored as their decimal text);
    bools, None and blank strings are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidArgument(f"{what} is required")
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{what} must be a non-empty string")
    return value


def require_attributes(values: Any, what: str = "attributes") -> List[str]:
    """Require a non-empty sequence of non-blank attribute ids."""
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise InvalidArgument(f"{what} must be a sequence of attribute ids")
    if not values:
        raise InvalidArgument(f"{what} must not be empty")
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise InvalidArgument(f"{what} contains an empty or non-string attribute: {value!r}")
    return list(values)
