# provenance/core/identity.py
from typing import Optional

from provenance.core.errors import InvalidIdentifier


def is_null_identifier(value: Optional[str]) -> bool:
    """
    True for the null/zero sentinel: None, blank strings, and strings made
    only of zeros (optionally 0x-prefixed, e.g. an all-zero address or hash).
    """
    if value is None:
        return True
    stripped = value.strip()
    if stripped[:2].lower() == "0x":
        stripped = stripped[2:]
    return stripped.strip("0") == ""


def require_identifier(value: Optional[str], what: str) -> str:
    if not isinstance(value, str) or is_null_identifier(value):
        raise InvalidIdentifier(f"{what} must not be null or zero (got {value!r})")
    return value
