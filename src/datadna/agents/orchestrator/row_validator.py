"""Per-value checks against a destination column's semantic type."""

from __future__ import annotations

import re
from datetime import date

from datadna.agents.mapper.transforms import US_STATES
from datadna.agents.profiler.npi_validator import validate_provider_identifier
from datadna.agents.profiler.pattern_detector import is_null
from datadna.core.types import Scalar, stringify
from datadna.models.schema import SemanticType, TargetColumn

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$")

STATE_CODES = frozenset(US_STATES.values())
BOOLEAN_VALUES = frozenset({"true", "false", "yes", "no", "y", "n", "t", "f", "1", "0"})


def _is_iso_date(text: str) -> bool:
    if not ISO_DATE_RE.match(text):
        return False
    try:
        date.fromisoformat(text[:10])
    except ValueError:
        return False
    return True


def _is_number(text: str) -> bool:
    cleaned = text.replace(",", "").replace("$", "").rstrip("%").strip()
    try:
        float(cleaned)
    except ValueError:
        return False
    return True


def validate_value(
    column: TargetColumn, value: Scalar, enforce_npi_checksum: bool = False
) -> str | None:
    """Error message if ``value`` cannot be written to ``column``, else None.

    Provider identifiers need ten digits; the NPI check digit is only
    verified with ``enforce_npi_checksum``.
    """
    if is_null(value):
        return "value is required" if column.required else None

    kind = column.semantic_type
    text = stringify(value)

    if kind is SemanticType.BOOLEAN:
        if isinstance(value, bool) or text.lower() in BOOLEAN_VALUES:
            return None
        return f"{text!r} is not a boolean"

    if isinstance(value, bool):
        return f"boolean not accepted for {kind} column"

    if kind is SemanticType.EMAIL and not EMAIL_RE.match(text):
        return f"{text!r} is not an email address"
    if kind in (SemanticType.DATE, SemanticType.DATETIME) and not _is_iso_date(text):
        return f"{text!r} is not an ISO-8601 date"
    if kind is SemanticType.PROVIDER_IDENTIFIER:
        if not re.fullmatch(r"\d{10}", text):
            return f"{text!r} is not a 10-digit provider identifier"
        if enforce_npi_checksum and not validate_provider_identifier(value):
            return f"{text!r} is not a valid NPI"
    if kind is SemanticType.STATE_CODE and text.upper() not in STATE_CODES:
        return f"{text!r} is not a US state code"
    if kind is SemanticType.ZIP and not ZIP_RE.match(text):
        return f"{text!r} is not a ZIP code"
    if kind is SemanticType.PHONE:
        digits = re.sub(r"\D", "", text)
        if len(digits) == 11 and digits.startswith("1"):
            digits = digits[1:]
        if len(digits) != 10:
            return f"{text!r} is not a 10-digit phone number"
    if kind in (SemanticType.NUMBER, SemanticType.CURRENCY) and not _is_number(text):
        return f"{text!r} is not a number"
    return None
