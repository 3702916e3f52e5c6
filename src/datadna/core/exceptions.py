"""DataDNA exception hierarchy."""

from __future__ import annotations


class DataDNAError(Exception):
    """Base exception for all DataDNA errors."""


class InvalidSourceError(DataDNAError):
    """Row set or source description rejected before analysis."""


class SchemaError(DataDNAError):
    """Destination schema description is inconsistent."""


class ReasoningServiceError(DataDNAError):
    """External reasoning call failed or returned an unusable answer."""

    def __init__(self, column: str, message: str) -> None:
        self.column = column
        super().__init__(f"Reasoning failed for column {column!r}: {message}")


class MigrationError(DataDNAError):
    """Error during migration run handling."""


class InvalidTransitionError(MigrationError):
    """A migration run was asked to move to a state it cannot reach."""

    def __init__(self, run_id: str, current: str, target: str) -> None:
        self.run_id = run_id
        self.current = current
        self.target = target
        super().__init__(f"Run {run_id}: illegal transition {current} -> {target}")


class RunNotFoundError(MigrationError):
    """No migration run with the given id."""


class LearningStoreError(DataDNAError):
    """Learned-mapping persistence failed."""


class LearningStoreContentionError(LearningStoreError):
    """Compare-and-retry budget exhausted for a learned mapping."""

    def __init__(self, org_id: str, key: str, attempts: int) -> None:
        self.org_id = org_id
        self.key = key
        self.attempts = attempts
        super().__init__(f"Gave up updating {key!r} for org {org_id!r} after {attempts} attempts")


class CacheError(DataDNAError):
    """Cache backend operation failed."""
