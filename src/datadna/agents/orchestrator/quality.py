"""Cell lineage digests and data-quality scoring for a migration run."""

from __future__ import annotations

import hashlib

from datadna.agents.profiler.pattern_detector import is_null
from datadna.core.types import Scalar, stringify
from datadna.models.migration import QualityScore, RowOutcome, RowStatus

# (minimum overall score, grade), best first
GRADES: tuple[tuple[float, str], ...] = (
    (95.0, "A+"),
    (90.0, "A"),
    (85.0, "B+"),
    (80.0, "B"),
    (75.0, "C+"),
    (70.0, "C"),
    (60.0, "D"),
)

WEIGHTS: dict[str, float] = {
    "completeness": 0.3,
    "accuracy": 0.3,
    "consistency": 0.2,
    "uniqueness": 0.2,
}

READY_OVERALL = 85.0
READY_ACCURACY = 90.0
COMPLETENESS_ADVICE_BELOW = 90.0
CONSISTENCY_ADVICE_BELOW = 95.0


def value_digest(value: Scalar) -> str | None:
    """SHA-256 of the value's text form; None for null or blank values."""
    if is_null(value):
        return None
    return hashlib.sha256(stringify(value).encode()).hexdigest()


def grade_for(score: float) -> str:
    for floor, grade in GRADES:
        if score >= floor:
            return grade
    return "F"


def _pct(part: int, whole: int) -> float:
    if whole == 0:
        return 100.0
    return round(100.0 * part / whole, 2)


class QualityTally:
    """Running counts over a run's row outcomes, scored once the run ends.

    Completeness is the share of mapped cells holding a value, accuracy the
    share of rows written, consistency the share of non-empty cells passing
    target validation and uniqueness the share of rows whose mapped values
    do not repeat an earlier row.
    """

    def __init__(self) -> None:
        self.rows = 0
        self.succeeded = 0
        self.cells = 0
        self.filled_cells = 0
        self.valid_cells = 0
        self.duplicate_rows = 0
        self._row_keys: set[str] = set()

    def add(self, outcome: RowOutcome) -> None:
        self.rows += 1
        if outcome.status is RowStatus.SUCCESS:
            self.succeeded += 1
        for entry in outcome.lineage:
            self.cells += 1
            if entry.target_digest is None:
                continue
            self.filled_cells += 1
            if entry.validation_passed:
                self.valid_cells += 1

        row_key = "|".join(
            f"{e.target_table}.{e.target_column}={e.target_digest or ''}" for e in outcome.lineage
        )
        if row_key in self._row_keys:
            self.duplicate_rows += 1
        else:
            self._row_keys.add(row_key)

    def score(self) -> QualityScore:
        if self.rows == 0:
            return QualityScore(recommendations=["No rows were migrated"])

        dims = {
            "completeness": _pct(self.filled_cells, self.cells),
            "accuracy": _pct(self.succeeded, self.rows),
            "consistency": _pct(self.valid_cells, self.filled_cells),
            "uniqueness": _pct(self.rows - self.duplicate_rows, self.rows),
        }
        overall = round(sum(WEIGHTS[name] * value for name, value in dims.items()), 2)

        advice: list[str] = []
        if dims["completeness"] < COMPLETENESS_ADVICE_BELOW:
            advice.append(
                f"{self.cells - self.filled_cells} mapped values are empty; "
                "supply defaults or confirm the target columns are optional"
            )
        if dims["consistency"] < CONSISTENCY_ADVICE_BELOW:
            advice.append(
                f"{self.filled_cells - self.valid_cells} values failed target validation; "
                "review the transforms for those columns"
            )
        if self.duplicate_rows:
            advice.append(f"{self.duplicate_rows} rows repeat an earlier row; deduplicate the source")
        if dims["accuracy"] < READY_ACCURACY:
            advice.append(f"{self.rows - self.succeeded} rows were not written; resolve their errors")

        return QualityScore(
            overall=overall,
            duplicate_rows=self.duplicate_rows,
            grade=grade_for(overall),
            ready_for_production=overall >= READY_OVERALL and dims["accuracy"] >= READY_ACCURACY,
            recommendations=advice,
            **dims,
        )
