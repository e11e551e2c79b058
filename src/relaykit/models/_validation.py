"""Shared validation helpers for frozen dataclass models.

Private module, used by ``__post_init__`` methods in sibling model modules.
"""

from __future__ import annotations

import string
from typing import Any


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_str_no_null(value: Any, name: str) -> None:
    """Raise if *value* is not a ``str`` or contains null bytes."""
    validate_instance(value, str, name)
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")


def validate_optional_str(value: Any, name: str) -> None:
    """Like ``validate_str_no_null`` but accepts ``None``."""
    if value is not None:
        validate_str_no_null(value, name)


def validate_hex(value: Any, name: str, *, length: int) -> None:
    """Raise if *value* is not exactly *length* hexadecimal characters."""
    validate_str_no_null(value, name)
    if len(value) != length:
        raise ValueError(f"{name} must be {length} hex characters, got {len(value)}")
    if not all(char in string.hexdigits for char in value):
        raise ValueError(f"{name} must be hexadecimal")
