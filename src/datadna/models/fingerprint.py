"""Column profile and source fingerprint ("DNA") models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from datadna.models.patterns import InferredType, PatternCategory


class SourceKind(StrEnum):
    TABULAR_FILE = "tabular-file"
    DATABASE = "database"
    API = "api"
    MESSAGE_STANDARD = "message-standard"


class ColumnProfile(BaseModel):
    """Statistical summary of one source column."""

    model_config = {"frozen": True}

    original_name: str
    normalized_name: str
    primary_pattern: PatternCategory
    secondary_patterns: tuple[PatternCategory, ...] = ()
    pattern_confidence: float = Field(0.0, ge=0.0, le=1.0)
    inferred_type: InferredType = InferredType.STRING
    null_fraction: float = Field(0.0, ge=0.0, le=1.0)
    unique_fraction: float = Field(0.0, ge=0.0, le=1.0)
    average_length: float = 0.0
    sample_values: tuple[str, ...] = ()
    sampled_count: int = 0
    non_null_count: int = 0

    @property
    def patterns(self) -> tuple[PatternCategory, ...]:
        """Primary followed by secondary patterns."""
        return (self.primary_pattern, *self.secondary_patterns)


class SourceFingerprint(BaseModel):
    """Structural fingerprint of one analyzed dataset."""

    model_config = {"frozen": True}

    id: str
    source_kind: SourceKind
    source_system_guess: Optional[str] = None
    column_count: int
    row_count: int
    columns: tuple[ColumnProfile, ...] = ()
    structural_hash: str
    signature_vector: tuple[float, ...]
    detected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def column(self, name: str) -> ColumnProfile | None:
        for col in self.columns:
            if col.original_name == name:
                return col
        return None


class SimilarMigration(BaseModel):
    """A catalogued fingerprint ranked against a new one."""

    fingerprint_id: str
    similarity: float
    source_system_guess: Optional[str] = None
    column_count: int = 0
    detected_at: Optional[datetime] = None
