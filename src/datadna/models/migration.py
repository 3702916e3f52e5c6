"""Migration run, row outcome and analysis report models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from datadna.core.types import utcnow
from datadna.models.fingerprint import SimilarMigration, SourceFingerprint
from datadna.models.mapping import ConfirmedMapping, MappingSuggestion, TransformKind


class RunState(StrEnum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    EXECUTING = "executing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed-with-errors"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset(
    {RunState.COMPLETED, RunState.COMPLETED_WITH_ERRORS, RunState.ABORTED}
)


class RowStatus(StrEnum):
    SUCCESS = "success"
    VALIDATION_ERROR = "validation-error"
    WRITE_ERROR = "write-error"


class RowError(BaseModel):
    field: str
    message: str


class LineageEntry(BaseModel):
    """How one source cell reached its target column.

    Values are kept as SHA-256 digests of their text form, None for nulls.
    """

    source_column: str
    target_table: str
    target_column: str
    transform: Optional[TransformKind] = None
    source_digest: Optional[str] = None
    target_digest: Optional[str] = None
    validation_passed: bool = True
    validation_error: Optional[str] = None


class RowOutcome(BaseModel):
    row_index: int
    status: RowStatus
    applied_mapping: dict[str, str] = Field(default_factory=dict)  # source column -> "table.column"
    errors: list[RowError] = Field(default_factory=list)
    lineage: list[LineageEntry] = Field(default_factory=list)


class ExecutionOptions(BaseModel):
    batch_size: int = Field(500, gt=0)
    abort_on_first_error: bool = False
    learn_on_completion: bool = True
    track_lineage: bool = True


class WriteResult(BaseModel):
    """Per-record answer from a destination writer."""

    ok: bool
    error: Optional[str] = None


class MigrationRun(BaseModel):
    run_id: str
    org_id: str
    fingerprint_id: str
    state: RunState = RunState.DRAFT
    confirmed_mappings: list[ConfirmedMapping] = Field(default_factory=list)
    outcomes: list[RowOutcome] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    learned: bool = False


class QualityScore(BaseModel):
    """Data-quality grade of one run, each dimension on a 0-100 scale."""

    overall: float = 0.0
    completeness: float = 0.0
    accuracy: float = 0.0
    consistency: float = 0.0
    uniqueness: float = 0.0
    duplicate_rows: int = 0
    grade: str = "F"
    ready_for_production: bool = False
    recommendations: list[str] = Field(default_factory=list)


class MigrationExecutionResult(BaseModel):
    run_id: str
    state: RunState
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: list[RowOutcome] = Field(default_factory=list)
    cancelled: bool = False
    batches_completed: int = 0
    quality: Optional[QualityScore] = None


class AnalysisReport(BaseModel):
    """Fingerprint, suggestions and prior-migration matches for one source."""

    fingerprint: SourceFingerprint
    suggestions: list[MappingSuggestion] = Field(default_factory=list)
    similar_migrations: list[SimilarMigration] = Field(default_factory=list)
    estimated_accuracy: float = 0.0
    columns_requiring_review: list[str] = Field(default_factory=list)
