"""Type aliases used across the DataDNA engine."""

from __future__ import annotations

from datetime import datetime, timezone

# Closed scalar union accepted at the row-source boundary.
Scalar = str | int | float | bool | None

SCALAR_TYPES: tuple[type, ...] = (str, int, float, bool)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stringify(value: Scalar) -> str:
    """Text form of a scalar; integral floats (spreadsheet numbers) lose their ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
