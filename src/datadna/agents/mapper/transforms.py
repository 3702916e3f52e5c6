"""Value transformations attached to mapping candidates and applied on execution."""

from __future__ import annotations

import re
from datetime import datetime

from datadna.core.types import Scalar
from datadna.models.fingerprint import ColumnProfile
from datadna.models.mapping import TransformKind
from datadna.models.patterns import PatternCategory
from datadna.models.schema import SemanticType, TargetColumn

US_STATES: dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "district of columbia": "DC", "florida": "FL", "georgia": "GA", "hawaii": "HI",
    "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY",
}

# Names the reasoning service may use for a transformation.
TRANSFORM_ALIASES: dict[str, TransformKind] = {
    "normalize_phone": TransformKind.NORMALIZE_PHONE,
    "convert_date_to_iso": TransformKind.DATE_TO_ISO,
    "date_to_iso": TransformKind.DATE_TO_ISO,
    "parse_name_first": TransformKind.NAME_FIRST_FROM_FULL,
    "name_first_from_full": TransformKind.NAME_FIRST_FROM_FULL,
    "parse_name_last": TransformKind.NAME_LAST_FROM_FULL,
    "name_last_from_full": TransformKind.NAME_LAST_FROM_FULL,
    "convert_state_to_code": TransformKind.STATE_TO_CODE,
    "state_to_code": TransformKind.STATE_TO_CODE,
}

_DATE_FORMATS = ("%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y", "%m-%d-%y", "%b %d, %Y", "%B %d, %Y", "%b %d %Y")


def infer_transform(profile: ColumnProfile, target: TargetColumn) -> TransformKind | None:
    """Transformation needed to land ``profile`` values in ``target``, if any."""
    pattern = profile.primary_pattern
    kind = target.semantic_type
    if kind is SemanticType.PHONE and pattern is PatternCategory.PHONE:
        return TransformKind.NORMALIZE_PHONE
    if kind in (SemanticType.DATE, SemanticType.DATETIME) and pattern is PatternCategory.DATE:
        return TransformKind.DATE_TO_ISO
    if pattern is PatternCategory.NAME_FULL:
        if kind is SemanticType.FIRST_NAME:
            return TransformKind.NAME_FIRST_FROM_FULL
        if kind is SemanticType.LAST_NAME:
            return TransformKind.NAME_LAST_FROM_FULL
    if kind is SemanticType.STATE_CODE and profile.average_length > 2:
        return TransformKind.STATE_TO_CODE
    return None


def parse_transform_name(name: str | None) -> TransformKind | None:
    if not name:
        return None
    return TRANSFORM_ALIASES.get(name.strip().lower())


def normalize_phone(value: str) -> str:
    digits = re.sub(r"\D", "", value)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        return value
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def date_to_iso(value: str) -> str:
    text = value.strip()
    if re.match(r"^\d{4}-\d{2}-\d{2}", text):
        return text[:10]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return value


def _split_name(value: str) -> tuple[str, str]:
    """(first, last) from "Last, First" or "First [Middle] Last"."""
    if "," in value:
        last, _, first = value.partition(",")
        return first.strip().split(" ")[0], last.strip()
    parts = value.split()
    if len(parts) == 1:
        return parts[0], parts[0]
    return parts[0], parts[-1]


def state_to_code(value: str) -> str:
    text = value.strip()
    code = US_STATES.get(text.lower())
    if code:
        return code
    if len(text) == 2:
        return text.upper()
    return value


def apply_transform(kind: TransformKind | None, value: Scalar) -> Scalar:
    """Apply ``kind`` to a string value; other values pass through unchanged."""
    if kind is None or not isinstance(value, str) or not value.strip():
        return value
    if kind is TransformKind.NORMALIZE_PHONE:
        return normalize_phone(value)
    if kind is TransformKind.DATE_TO_ISO:
        return date_to_iso(value)
    if kind is TransformKind.NAME_FIRST_FROM_FULL:
        return _split_name(value)[0]
    if kind is TransformKind.NAME_LAST_FROM_FULL:
        return _split_name(value)[1]
    if kind is TransformKind.STATE_TO_CODE:
        return state_to_code(value)
    return value
