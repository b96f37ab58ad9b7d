from __future__ import annotations

from typing import Any


def as_integral(v: Any) -> int:
    """Parse a whole number from JSON input without truncating.

    Accepts ints, floats with no fractional part (JSON `5.0`) and decimal
    integer strings. Anything else raises TypeError or ValueError so callers
    can map it onto their own typed error.
    """
    if isinstance(v, bool) or v is None:
        raise TypeError(f"expected an integer, got {v!r}")
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        if not v.is_integer():
            raise ValueError(f"non-integral value {v!r}")
        return int(v)
    if isinstance(v, str):
        return int(v.strip())
    raise TypeError(f"expected an integer, got {type(v).__name__}")


__all__ = ["as_integral"]
