"""Closed set of semantic data patterns a source column can exhibit."""

from __future__ import annotations

from enum import StrEnum


class PatternCategory(StrEnum):
    """Semantic pattern categories.

    Declaration order is the slot order of every fingerprint signature
    vector; appending is safe, reordering invalidates stored fingerprints.
    """

    # identifiers
    NPI = "NPI"
    SSN = "SSN"
    UUID = "UUID"
    ID_NUMERIC = "ID_NUMERIC"
    ID_ALPHANUMERIC = "ID_ALPHANUMERIC"
    CODE = "CODE"
    # clinical codes
    LOINC = "LOINC"
    SNOMED_CT = "SNOMED_CT"
    ICD10 = "ICD10"
    CPT = "CPT"
    RXNORM = "RXNORM"
    NDC = "NDC"
    FHIR_REFERENCE = "FHIR_REFERENCE"
    FHIR_RESOURCE_TYPE = "FHIR_RESOURCE_TYPE"
    # contact
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    ZIP = "ZIP"
    STATE_CODE = "STATE_CODE"
    # temporal
    DATE_ISO = "DATE_ISO"
    DATE = "DATE"
    # names
    NAME_FULL = "NAME_FULL"
    NAME_FIRST = "NAME_FIRST"
    NAME_LAST = "NAME_LAST"
    # numeric / flags
    CURRENCY = "CURRENCY"
    PERCENTAGE = "PERCENTAGE"
    BOOLEAN = "BOOLEAN"
    # free text
    TEXT_SHORT = "TEXT_SHORT"
    TEXT_LONG = "TEXT_LONG"


FREE_TEXT = frozenset({PatternCategory.TEXT_SHORT, PatternCategory.TEXT_LONG})


class InferredType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


_TYPE_BY_PATTERN: dict[PatternCategory, InferredType] = {
    PatternCategory.ID_NUMERIC: InferredType.NUMBER,
    PatternCategory.CURRENCY: InferredType.NUMBER,
    PatternCategory.PERCENTAGE: InferredType.NUMBER,
    PatternCategory.DATE: InferredType.DATE,
    PatternCategory.DATE_ISO: InferredType.DATE,
    PatternCategory.BOOLEAN: InferredType.BOOLEAN,
}


def inferred_type_for(pattern: PatternCategory) -> InferredType:
    return _TYPE_BY_PATTERN.get(pattern, InferredType.STRING)
