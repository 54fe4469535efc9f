"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__``
methods in sibling model modules to enforce runtime type constraints.
"""

from __future__ import annotations

import re
from typing import Any


_HEX64 = re.compile(r"^[0-9a-f]{64}$")
_HEX128 = re.compile(r"^[0-9a-f]{128}$")


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_kind(value: Any, name: str, maximum: int) -> None:
    """Raise if *value* is not an ``int`` within ``0..maximum``."""
    validate_timestamp(value, name)
    if value > maximum:
        raise ValueError(f"{name} must be <= {maximum}, got {value}")


def validate_hex(value: Any, name: str, length: int) -> None:
    """Raise if *value* is not a lowercase hex string of *length* characters."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    pattern = _HEX64 if length == 64 else _HEX128  # noqa: PLR2004
    if not pattern.match(value):
        raise ValueError(f"{name} must be {length} lowercase hex characters")


def freeze_tags(value: Any, name: str = "tags") -> tuple[tuple[str, ...], ...]:
    """Convert a sequence of string sequences into nested tuples.

    Raises:
        TypeError: If *value* is not a list/tuple of lists/tuples of ``str``.
        ValueError: If a tag is empty.
    """
    if not isinstance(value, list | tuple):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    frozen: list[tuple[str, ...]] = []
    for i, tag in enumerate(value):
        if not isinstance(tag, list | tuple):
            raise TypeError(f"{name}[{i}] must be a list, got {type(tag).__name__}")
        if not tag:
            raise ValueError(f"{name}[{i}] must not be empty")
        for item in tag:
            if not isinstance(item, str):
                raise TypeError(f"{name}[{i}] items must be str, got {type(item).__name__}")
        frozen.append(tuple(tag))
    return tuple(frozen)
