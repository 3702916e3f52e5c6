"""LearningStore: organization-scoped learned mappings updated from run outcomes."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from datadna.agents.base import BaseAgent
from datadna.core.config import AppSettings
from datadna.core.exceptions import LearningStoreContentionError, LearningStoreError
from datadna.core.protocols import ILearnedMappingStore
from datadna.core.types import utcnow
from datadna.models.mapping import ConfirmedMapping, LearnedMapping
from datadna.models.migration import RowOutcome, RowStatus
from datadna.models.patterns import PatternCategory

logger = logging.getLogger(__name__)


def _require_org(org_id: str) -> None:
    if not org_id:
        raise LearningStoreError("org_id is required for learned-mapping operations")


class LearningStore(BaseAgent):
    """Reads and updates LearnedMapping records through an ILearnedMappingStore."""

    def __init__(
        self,
        *,
        settings: AppSettings | None = None,
        store: ILearnedMappingStore,
    ) -> None:
        super().__init__(settings=settings)
        self._store = store
        self._cfg = self._settings.learning

    @property
    def store(self) -> ILearnedMappingStore:
        return self._store

    def suggest_from_history(
        self, pattern: PatternCategory, normalized_name: str, org_id: str
    ) -> LearnedMapping | None:
        """Highest-confidence learned mapping for (pattern, name) in the organization."""
        _require_org(org_id)
        records = self._store.list_for_key(org_id, pattern, normalized_name)
        if not records:
            return None
        return max(records, key=lambda m: (m.confidence, m.times_succeeded))

    def list_mappings(self, org_id: str) -> list[LearnedMapping]:
        _require_org(org_id)
        return self._store.list_for_org(org_id)

    # ---- outcome recording ----

    def record_outcome(
        self,
        org_id: str,
        run_id: str,
        mappings_used: Sequence[ConfirmedMapping],
        row_outcomes: Sequence[RowOutcome],
    ) -> list[LearnedMapping]:
        """Fold one completed run into the organization's learned mappings.

        A run is learned from at most once. Each record remembers the runs it
        has absorbed, so a call that stopped on contention can be repeated:
        records already updated are skipped and the run marker is written
        only after every update landed.
        """
        _require_org(org_id)
        if self._store.run_learned(org_id, run_id):
            logger.info("Run %s already learned for org %s, skipping", run_id, org_id)
            return []

        updated: list[LearnedMapping] = []
        for mapping in mappings_used:
            if mapping.source_pattern is None or not mapping.normalized_name:
                logger.debug("Mapping for %r lacks a learning key, skipping", mapping.source_column)
                continue
            applied, failed = self._row_counts(mapping, row_outcomes)
            if applied == 0:
                continue
            succeeded = failed / applied <= self._cfg.max_row_failure_rate

            if mapping.is_correction:
                lowered = self._penalize(
                    org_id, run_id, mapping.source_pattern, mapping.normalized_name,
                    mapping.suggested_table or "", mapping.suggested_column or "",
                )
                if lowered is not None:
                    updated.append(lowered)

            reinforced = self._reinforce(org_id, run_id, mapping, succeeded)
            if reinforced is not None:
                updated.append(reinforced)

        self._store.mark_run_learned(org_id, run_id)
        logger.info("Learned from run %s (org %s): %d mappings updated", run_id, org_id, len(updated))
        return updated

    @staticmethod
    def _row_counts(mapping: ConfirmedMapping, outcomes: Sequence[RowOutcome]) -> tuple[int, int]:
        applied = failed = 0
        blame = {mapping.source_column, mapping.target_table}
        for outcome in outcomes:
            if mapping.source_column not in outcome.applied_mapping:
                continue
            applied += 1
            if outcome.status is not RowStatus.SUCCESS and any(e.field in blame for e in outcome.errors):
                failed += 1
        return applied, failed

    def _raise(self, confidence: float) -> float:
        return min(1.0, confidence + self._cfg.success_step * (1.0 - confidence))

    def _lower(self, confidence: float) -> float:
        return max(self._cfg.min_confidence, confidence - self._cfg.correction_penalty)

    def _reinforce(
        self, org_id: str, run_id: str, mapping: ConfirmedMapping, succeeded: bool
    ) -> LearnedMapping | None:
        def mutate(current: LearnedMapping) -> LearnedMapping:
            return current.model_copy(update={
                "times_used": current.times_used + 1,
                "times_succeeded": current.times_succeeded + (1 if succeeded else 0),
                "confidence": self._raise(current.confidence) if succeeded else self._lower(current.confidence),
                "last_used_at": utcnow(),
            })

        return self._update(
            org_id, run_id, mapping.source_pattern, mapping.normalized_name,  # type: ignore[arg-type]
            mapping.target_table, mapping.target_column, mutate, create=True,
        )

    def _penalize(
        self, org_id: str, run_id: str, pattern: PatternCategory, name: str, table: str, column: str
    ) -> LearnedMapping | None:
        def mutate(current: LearnedMapping) -> LearnedMapping:
            return current.model_copy(update={"confidence": self._lower(current.confidence)})

        return self._update(org_id, run_id, pattern, name, table, column, mutate, create=False)

    def _update(
        self,
        org_id: str,
        run_id: str,
        pattern: PatternCategory,
        name: str,
        table: str,
        column: str,
        mutate: Callable[[LearnedMapping], LearnedMapping],
        create: bool,
    ) -> LearnedMapping | None:
        """Read-modify-write with compare-and-retry on the record version.

        Returns None when there is nothing to change: the record is missing
        and ``create`` is off, or it already absorbed ``run_id``.
        """
        key = f"{pattern}:{name}->{table}.{column}"
        for attempt in range(1, self._cfg.max_retries + 1):
            current = self._store.get(org_id, pattern, name, table, column)
            if current is None:
                if not create:
                    return None
                base = LearnedMapping(
                    org_id=org_id,
                    source_pattern=pattern,
                    normalized_name=name,
                    target_table=table,
                    target_column=column,
                    confidence=self._cfg.initial_confidence,
                )
                expected = None
            elif run_id in current.recent_runs:
                logger.debug("Run %s already applied to %s (org %s)", run_id, key, org_id)
                return None
            else:
                base = current
                expected = current.version
            new = mutate(base).model_copy(update={
                "version": (expected or 0) + 1,
                "recent_runs": [*base.recent_runs, run_id][-self._cfg.recent_runs_kept:],
            })
            if self._store.put(new, expected_version=expected):
                return new
            logger.debug("Version conflict on %s (org %s), attempt %d", key, org_id, attempt)
            time.sleep(0.005 * attempt)
        logger.error("Learned mapping %s for org %s still contended after %d attempts",
                     key, org_id, self._cfg.max_retries)
        raise LearningStoreContentionError(org_id, key, self._cfg.max_retries)
