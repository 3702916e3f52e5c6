"""National Provider Identifier checksum (ISO 7812 Luhn with the 80840 prefix)."""

from __future__ import annotations

import re

from datadna.core.types import Scalar, stringify

NPI_PREFIX = "80840"

_TEN_DIGITS = re.compile(r"^\d{10}$")


def luhn_check_digit(digits: str) -> int:
    """Check digit that makes ``digits + check`` pass Luhn mod-10."""
    total = 0
    # rightmost payload digit is doubled once the check digit is appended
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 0:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return (10 - total % 10) % 10


def validate_provider_identifier(value: Scalar) -> bool:
    """True only for a 10-digit NPI whose last digit is its Luhn check digit."""
    if value is None or isinstance(value, bool):
        return False
    text = stringify(value)
    if not _TEN_DIGITS.match(text):
        return False
    return luhn_check_digit(NPI_PREFIX + text[:9]) == int(text[9])
