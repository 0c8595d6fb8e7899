"""
The single missing value indicator.

All invalid, absent, or user-indicated missing values are mapped to ``MISSING``.
Compare with ``is``:

    if value is MISSING:
        ...
"""
from __future__ import annotations

from typing import Any


class _MissingType:
    _instance = None

    def __new__(cls) -> "_MissingType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        # unpickles to the module-level singleton
        return "MISSING"

    def __copy__(self) -> "_MissingType":
        return self

    def __deepcopy__(self, memo: Any) -> "_MissingType":
        return self


MISSING = _MissingType()


def is_missing(value: Any) -> bool:
    return value is MISSING
