"""Destination schema description consumed by Mapping Intelligence."""

from __future__ import annotations

import hashlib
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from datadna.models.patterns import PatternCategory as P


class SemanticType(StrEnum):
    IDENTIFIER = "identifier"
    UUID = "uuid"
    PROVIDER_IDENTIFIER = "provider_identifier"
    SSN = "ssn"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    FULL_NAME = "full_name"
    EMAIL = "email"
    PHONE = "phone"
    ZIP = "zip"
    STATE_CODE = "state_code"
    DATE = "date"
    DATETIME = "datetime"
    CODE = "code"
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    BOOLEAN = "boolean"
    NUMBER = "number"
    CURRENCY = "currency"
    LOINC = "loinc"
    SNOMED_CT = "snomed_ct"
    ICD10 = "icd10"
    CPT = "cpt"
    RXNORM = "rxnorm"
    NDC = "ndc"
    CLINICAL_CODE = "clinical_code"
    FHIR_REFERENCE = "fhir_reference"
    FHIR_RESOURCE_TYPE = "fhir_resource_type"


# Patterns that earn full pattern-compatibility credit per semantic type.
ACCEPTED_PATTERNS: dict[SemanticType, tuple[P, ...]] = {
    SemanticType.IDENTIFIER: (P.ID_NUMERIC, P.ID_ALPHANUMERIC),
    SemanticType.UUID: (P.UUID,),
    SemanticType.PROVIDER_IDENTIFIER: (P.NPI, P.ID_NUMERIC),
    SemanticType.SSN: (P.SSN,),
    SemanticType.FIRST_NAME: (P.NAME_FIRST, P.TEXT_SHORT),
    SemanticType.LAST_NAME: (P.NAME_LAST, P.TEXT_SHORT),
    SemanticType.FULL_NAME: (P.NAME_FULL,),
    SemanticType.EMAIL: (P.EMAIL,),
    SemanticType.PHONE: (P.PHONE,),
    SemanticType.ZIP: (P.ZIP,),
    SemanticType.STATE_CODE: (P.STATE_CODE,),
    SemanticType.DATE: (P.DATE_ISO, P.DATE),
    SemanticType.DATETIME: (P.DATE_ISO,),
    SemanticType.CODE: (P.CODE,),
    SemanticType.SHORT_TEXT: (P.TEXT_SHORT,),
    SemanticType.LONG_TEXT: (P.TEXT_LONG,),
    SemanticType.BOOLEAN: (P.BOOLEAN,),
    SemanticType.NUMBER: (P.ID_NUMERIC, P.CURRENCY, P.PERCENTAGE),
    SemanticType.CURRENCY: (P.CURRENCY,),
    SemanticType.LOINC: (P.LOINC,),
    SemanticType.SNOMED_CT: (P.SNOMED_CT,),
    SemanticType.ICD10: (P.ICD10,),
    SemanticType.CPT: (P.CPT,),
    SemanticType.RXNORM: (P.RXNORM,),
    SemanticType.NDC: (P.NDC,),
    SemanticType.CLINICAL_CODE: (P.SNOMED_CT, P.LOINC, P.ICD10, P.CODE),
    SemanticType.FHIR_REFERENCE: (P.FHIR_REFERENCE, P.UUID),
    SemanticType.FHIR_RESOURCE_TYPE: (P.FHIR_RESOURCE_TYPE,),
}


class TargetColumn(BaseModel):
    model_config = {"frozen": True}

    name: str
    semantic_type: SemanticType = SemanticType.SHORT_TEXT
    required: bool = False
    synonyms: tuple[str, ...] = ()

    @property
    def accepted_patterns(self) -> tuple[P, ...]:
        return ACCEPTED_PATTERNS[self.semantic_type]


class TargetTable(BaseModel):
    model_config = {"frozen": True}

    name: str
    columns: tuple[TargetColumn, ...] = ()

    def column(self, name: str) -> TargetColumn | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None


class DestinationSchema(BaseModel):
    """Read-only description of the destination tables."""

    model_config = {"frozen": True}

    name: str = "destination"
    tables: tuple[TargetTable, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _unique_names(self) -> "DestinationSchema":
        seen: set[str] = set()
        for table in self.tables:
            if table.name in seen:
                raise ValueError(f"duplicate table {table.name!r}")
            seen.add(table.name)
            cols = [c.name for c in table.columns]
            if len(cols) != len(set(cols)):
                raise ValueError(f"duplicate column in table {table.name!r}")
        return self

    def table(self, name: str) -> TargetTable | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def find_column(self, table: str, column: str) -> TargetColumn | None:
        tbl = self.table(table)
        return tbl.column(column) if tbl is not None else None

    def iter_columns(self):
        """Yield (table, column) pairs in declaration order."""
        for table in self.tables:
            for col in table.columns:
                yield table, col

    def signature(self) -> str:
        """Stable short hash of table/column/type names."""
        parts = sorted(
            f"{t.name}.{c.name}:{c.semantic_type}" for t, c in self.iter_columns()
        )
        return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]

    def summary(self) -> dict[str, dict[str, str]]:
        """{table: {column: semantic_type}} for reasoning prompts."""
        return {
            t.name: {c.name: str(c.semantic_type) for c in t.columns} for t in self.tables
        }
