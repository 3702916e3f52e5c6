"""Mapping suggestion, learned mapping and reasoning exchange models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from datadna.models.patterns import PatternCategory


class CandidateOrigin(StrEnum):
    SCORED = "scored"
    LEARNED = "learned"
    REASONING = "reasoning"


class ReasoningStatus(StrEnum):
    NOT_NEEDED = "not-needed"
    DISABLED = "disabled"
    ANSWERED = "answered"
    CACHED = "cached"
    FAILED = "failed"


class TransformKind(StrEnum):
    NORMALIZE_PHONE = "normalize_phone"
    DATE_TO_ISO = "date_to_iso"
    NAME_FIRST_FROM_FULL = "name_first_from_full"
    NAME_LAST_FROM_FULL = "name_last_from_full"
    STATE_TO_CODE = "state_to_code"


class ScoreSignal(BaseModel):
    """One weighted contribution to a candidate's confidence."""

    name: str
    weight: float
    score: float
    contribution: float
    detail: str = ""


class MappingCandidate(BaseModel):
    target_table: str
    target_column: str
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    rationale: list[ScoreSignal] = Field(default_factory=list)
    origin: CandidateOrigin = CandidateOrigin.SCORED
    transform: Optional[TransformKind] = None

    @property
    def target(self) -> tuple[str, str]:
        return (self.target_table, self.target_column)


class MappingSuggestion(BaseModel):
    source_column: str
    normalized_name: str
    primary_pattern: PatternCategory
    primary: Optional[MappingCandidate] = None
    alternatives: list[MappingCandidate] = Field(default_factory=list)
    requires_manual_review: bool = False
    reasoning_status: ReasoningStatus = ReasoningStatus.NOT_NEEDED


class LearnedMapping(BaseModel):
    """Organization-scoped memory of a (pattern, name) -> target mapping."""

    org_id: str
    source_pattern: PatternCategory
    normalized_name: str
    target_table: str
    target_column: str
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    times_used: int = 0
    times_succeeded: int = 0
    last_used_at: Optional[datetime] = None
    version: int = 0
    recent_runs: list[str] = Field(default_factory=list)  # runs already folded in, newest last

    @property
    def success_rate(self) -> float:
        if self.times_used == 0:
            return 0.0
        return self.times_succeeded / self.times_used


class ConfirmedMapping(BaseModel):
    """A source column mapping accepted or edited by a human."""

    source_column: str
    target_table: str
    target_column: str
    source_pattern: Optional[PatternCategory] = None
    normalized_name: Optional[str] = None
    suggested_table: Optional[str] = None
    suggested_column: Optional[str] = None
    transform: Optional[TransformKind] = None

    @property
    def is_correction(self) -> bool:
        if self.suggested_table is None or self.suggested_column is None:
            return False
        return (self.suggested_table, self.suggested_column) != (
            self.target_table,
            self.target_column,
        )

    @classmethod
    def accept(cls, suggestion: MappingSuggestion) -> "ConfirmedMapping":
        """Confirm a suggestion's primary candidate unchanged."""
        if suggestion.primary is None:
            raise ValueError(f"column {suggestion.source_column!r} has no primary candidate")
        primary = suggestion.primary
        return cls(
            source_column=suggestion.source_column,
            target_table=primary.target_table,
            target_column=primary.target_column,
            source_pattern=suggestion.primary_pattern,
            normalized_name=suggestion.normalized_name,
            suggested_table=primary.target_table,
            suggested_column=primary.target_column,
            transform=primary.transform,
        )

    @classmethod
    def correct(
        cls, suggestion: MappingSuggestion, target_table: str, target_column: str
    ) -> "ConfirmedMapping":
        """Confirm a suggestion with a human-chosen target."""
        primary = suggestion.primary
        return cls(
            source_column=suggestion.source_column,
            target_table=target_table,
            target_column=target_column,
            source_pattern=suggestion.primary_pattern,
            normalized_name=suggestion.normalized_name,
            suggested_table=primary.target_table if primary else None,
            suggested_column=primary.target_column if primary else None,
        )


class ReasoningRequest(BaseModel):
    column_name: str
    normalized_name: str
    sample_values: list[str] = Field(default_factory=list)
    patterns: list[PatternCategory] = Field(default_factory=list)
    schema_summary: dict[str, dict[str, str]] = Field(default_factory=dict)


class ReasoningResponse(BaseModel):
    """Advisory answer; accepts snake_case or camelCase keys."""

    model_config = {"populate_by_name": True}

    suggested_table: str = Field(validation_alias=AliasChoices("suggested_table", "suggestedTable"))
    suggested_column: str = Field(validation_alias=AliasChoices("suggested_column", "suggestedColumn"))
    confidence: float = Field(0.7, ge=0.0, le=1.0)
    rationale: str = Field("", validation_alias=AliasChoices("rationale", "reasoning"))
    transformation: Optional[str] = None
