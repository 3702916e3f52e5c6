"""MigrationOrchestrator: analyze -> suggest -> confirm -> execute -> learn.

One orchestrator serves one organization. Analysis is pure; execution
writes rows in ordered batches through an IDestinationWriter and records
one RowOutcome per attempted input row, in input order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from datadna.agents.base import BaseAgent
from datadna.agents.fingerprint.dna_generator import DNAGenerator, check_rows
from datadna.agents.learning.learning_store import LearningStore
from datadna.agents.mapper.mapping_intelligence import MappingIntelligence
from datadna.agents.mapper.reasoning import ReasoningCache
from datadna.agents.mapper.transforms import apply_transform, infer_transform
from datadna.agents.orchestrator.quality import QualityTally, value_digest
from datadna.agents.orchestrator.row_validator import validate_value
from datadna.agents.orchestrator.workflow_state import WorkflowStateManager
from datadna.agents.profiler.pattern_detector import PatternDetector
from datadna.core.config import AppSettings
from datadna.core.exceptions import (
    InvalidSourceError,
    LearningStoreContentionError,
    MigrationError,
    SchemaError,
)
from datadna.core.protocols import (
    IDestinationWriter,
    IFingerprintCatalog,
    IReasoningService,
)
from datadna.core.types import Scalar
from datadna.models.fingerprint import SimilarMigration, SourceFingerprint, SourceKind
from datadna.models.mapping import ConfirmedMapping, LearnedMapping, MappingSuggestion
from datadna.models.migration import (
    AnalysisReport,
    ExecutionOptions,
    LineageEntry,
    MigrationExecutionResult,
    MigrationRun,
    RowError,
    RowOutcome,
    RowStatus,
    RunState,
)
from datadna.models.schema import DestinationSchema, TargetColumn
from datadna.persistence.memory_backend import (
    MemoryDestinationWriter,
    MemoryFingerprintCatalog,
    MemoryLearnedMappingStore,
)
from datadna.schemas import default_schema

logger = logging.getLogger(__name__)

SIMILARITY_ACCURACY_WEIGHT = 0.1
MAX_ESTIMATED_ACCURACY = 0.99


class CancelSignal(Protocol):
    """threading.Event and asyncio.Event both satisfy this."""

    def is_set(self) -> bool: ...


def column_names_of(rows: Sequence[Mapping[str, Scalar]]) -> list[str]:
    """Column names in first-seen order across all rows."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


class MigrationOrchestrator(BaseAgent):
    """Coordinates the engine components for one organization."""

    def __init__(
        self,
        *,
        settings: AppSettings | None = None,
        org_id: str,
        schema: DestinationSchema | None = None,
        detector: PatternDetector | None = None,
        dna_generator: DNAGenerator | None = None,
        learning: LearningStore | None = None,
        mapper: MappingIntelligence | None = None,
        catalog: IFingerprintCatalog | None = None,
        writer: IDestinationWriter | None = None,
        reasoning: IReasoningService | None = None,
        reasoning_cache: ReasoningCache | None = None,
    ) -> None:
        super().__init__(settings=settings)
        if not org_id:
            raise MigrationError("org_id is required")
        self._org_id = org_id
        self._dna = dna_generator or DNAGenerator(settings=self._settings, detector=detector)
        self._learning = learning or LearningStore(
            settings=self._settings, store=MemoryLearnedMappingStore()
        )
        self._mapper = mapper or MappingIntelligence(
            settings=self._settings,
            schema=schema or default_schema(),
            learning_store=self._learning,
            reasoning=reasoning,
            reasoning_cache=reasoning_cache,
        )
        self._catalog = catalog if catalog is not None else MemoryFingerprintCatalog()
        self._writer = writer if writer is not None else MemoryDestinationWriter()
        self._state = WorkflowStateManager(org_id)

    @property
    def org_id(self) -> str:
        return self._org_id

    @property
    def schema(self) -> DestinationSchema:
        return self._mapper.schema

    @property
    def runs(self) -> WorkflowStateManager:
        return self._state

    @property
    def learning(self) -> LearningStore:
        return self._learning

    # ---- analysis ----

    def analyze_source(
        self,
        source_kind: SourceKind | str,
        column_names: Sequence[str] | None,
        sample_rows: Sequence[Mapping[str, Scalar]],
        source_system_hint: str | None = None,
    ) -> SourceFingerprint:
        if not sample_rows:
            raise InvalidSourceError("Cannot analyze an empty row set")
        check_rows(sample_rows)
        names = list(column_names) if column_names else column_names_of(sample_rows)
        if not names:
            raise InvalidSourceError("Source rows have no columns")
        return self._dna.generate_dna(source_kind, names, sample_rows, source_system_hint)

    async def suggest_mappings(self, fingerprint: SourceFingerprint) -> list[MappingSuggestion]:
        return await self._mapper.suggest_mappings(fingerprint, self._org_id)

    def find_similar_migrations(self, fingerprint: SourceFingerprint) -> list[SimilarMigration]:
        catalog = [fp for fp in self._catalog.list(self._org_id) if fp.id != fingerprint.id]
        return self._dna.find_similar(fingerprint, catalog)

    async def analyze(
        self,
        source_kind: SourceKind | str,
        rows: Sequence[Mapping[str, Scalar]],
        column_names: Sequence[str] | None = None,
        source_system_hint: str | None = None,
    ) -> AnalysisReport:
        """Fingerprint, suggestions and similar prior migrations in one call."""
        fingerprint = self.analyze_source(source_kind, column_names, rows, source_system_hint)
        suggestions = await self.suggest_mappings(fingerprint)
        similar = self.find_similar_migrations(fingerprint)

        confidences = [s.primary.confidence if s.primary else 0.0 for s in suggestions]
        mean = sum(confidences) / len(confidences) if confidences else 0.0
        top = similar[0].similarity if similar else 0.0
        accuracy = min(mean + top * SIMILARITY_ACCURACY_WEIGHT, MAX_ESTIMATED_ACCURACY)

        return AnalysisReport(
            fingerprint=fingerprint,
            suggestions=suggestions,
            similar_migrations=similar,
            estimated_accuracy=accuracy,
            columns_requiring_review=[s.source_column for s in suggestions if s.requires_manual_review],
        )

    # ---- runs ----

    def create_run(self, fingerprint: SourceFingerprint) -> MigrationRun:
        return self._state.create(fingerprint.id)

    def confirm_run(self, run_id: str, mappings: Sequence[ConfirmedMapping]) -> MigrationRun:
        for m in mappings:
            self._target_column(m)
        return self._state.confirm(run_id, list(mappings))

    def lineage_for_row(self, run_id: str, row_index: int) -> list[LineageEntry]:
        """Per-cell lineage recorded for one input row of a run; empty if the row was not attempted."""
        for outcome in self._state.get(run_id).outcomes:
            if outcome.row_index == row_index:
                return list(outcome.lineage)
        return []

    def _target_column(self, mapping: ConfirmedMapping) -> TargetColumn:
        column = self.schema.find_column(mapping.target_table, mapping.target_column)
        if column is None:
            raise SchemaError(
                f"Mapping for {mapping.source_column!r} names unknown target "
                f"{mapping.target_table}.{mapping.target_column}"
            )
        return column

    def _complete_mapping(
        self, fingerprint: SourceFingerprint, mapping: ConfirmedMapping
    ) -> ConfirmedMapping:
        """Fill pattern, normalized name and transform from the fingerprint when absent."""
        profile = fingerprint.column(mapping.source_column)
        if profile is None:
            return mapping
        update: dict[str, Any] = {}
        if mapping.source_pattern is None:
            update["source_pattern"] = profile.primary_pattern
        if not mapping.normalized_name:
            update["normalized_name"] = profile.normalized_name
        if mapping.transform is None:
            update["transform"] = infer_transform(profile, self._target_column(mapping))
        return mapping.model_copy(update=update) if update else mapping

    # ---- execution ----

    async def execute_migration(
        self,
        fingerprint: SourceFingerprint,
        confirmed_mappings: Sequence[ConfirmedMapping],
        rows: Sequence[Mapping[str, Scalar]],
        options: ExecutionOptions | None = None,
        cancel_event: CancelSignal | None = None,
        run_id: str | None = None,
    ) -> MigrationExecutionResult:
        """Validate, transform and write ``rows`` under the confirmed mappings.

        Without ``run_id`` a run is created and confirmed here; with one, the
        run must already be confirmed. Cancellation is checked before each
        batch; a cancelled or aborted run keeps the outcomes it produced.
        """
        if options is None:
            cfg = self._settings.execution
            options = ExecutionOptions(
                batch_size=cfg.batch_size,
                abort_on_first_error=cfg.abort_on_first_error,
                learn_on_completion=cfg.learn_on_completion,
                track_lineage=cfg.track_lineage,
            )
        check_rows(rows)
        mappings = [self._complete_mapping(fingerprint, m) for m in confirmed_mappings]

        if run_id is None:
            run_id = self.create_run(fingerprint).run_id
            self.confirm_run(run_id, mappings)
        else:
            run = self._state.get(run_id)
            if run.fingerprint_id != fingerprint.id:
                raise MigrationError(f"Run {run_id} was created for another fingerprint")
            if run.confirmed_mappings:
                mappings = [self._complete_mapping(fingerprint, m) for m in run.confirmed_mappings]
        self._state.transition(run_id, RunState.EXECUTING)

        targets = [(m, self._target_column(m)) for m in mappings]
        outcomes: list[RowOutcome] = []
        tally = QualityTally()
        batches_completed = 0
        cancelled = aborted = False

        for start in range(0, len(rows), options.batch_size):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                logger.info("Run %s cancelled before batch %d", run_id, batches_completed + 1)
                break
            batch = rows[start : start + options.batch_size]
            batch_outcomes, stop = await self._run_batch(start, batch, targets, options)
            for outcome in batch_outcomes:
                tally.add(outcome)
            if not options.track_lineage:
                batch_outcomes = [o.model_copy(update={"lineage": []}) for o in batch_outcomes]
            outcomes.extend(batch_outcomes)
            batches_completed += 1
            logger.info(
                "Run %s batch %d: %d rows, %d failed", run_id, batches_completed,
                len(batch_outcomes), sum(o.status is not RowStatus.SUCCESS for o in batch_outcomes),
            )
            if stop:
                aborted = True
                logger.warning("Run %s aborted on first error at batch %d", run_id, batches_completed)
                break

        succeeded = sum(1 for o in outcomes if o.status is RowStatus.SUCCESS)
        failed = len(outcomes) - succeeded
        if cancelled or aborted:
            final = RunState.ABORTED
        elif failed:
            final = RunState.COMPLETED_WITH_ERRORS
        else:
            final = RunState.COMPLETED

        self._state.record_outcomes(run_id, outcomes)
        self._state.transition(run_id, final)

        quality = tally.score()
        result = MigrationExecutionResult(
            run_id=run_id,
            state=final,
            attempted=len(outcomes),
            succeeded=succeeded,
            failed=failed,
            outcomes=outcomes,
            cancelled=cancelled,
            batches_completed=batches_completed,
            quality=quality,
        )
        logger.info(
            "Run %s finished %s: %d/%d rows, quality %.1f (%s)", run_id, final,
            succeeded, len(outcomes), quality.overall, quality.grade,
        )
        if options.learn_on_completion and final is not RunState.ABORTED:
            try:
                self.learn_from_results(fingerprint, result)
            except LearningStoreContentionError as exc:
                # run stays unlearned; learn_from_results may be called again
                logger.error("Run %s finished but was not learned from: %s", run_id, exc)
        return result

    async def _run_batch(
        self,
        offset: int,
        batch: Sequence[Mapping[str, Scalar]],
        targets: list[tuple[ConfirmedMapping, TargetColumn]],
        options: ExecutionOptions,
    ) -> tuple[list[RowOutcome], bool]:
        """Outcomes for one batch, and whether the run must stop after it."""
        enforce_npi = self._settings.execution.enforce_npi_checksum
        applied = {m.source_column: f"{m.target_table}.{m.target_column}" for m, _ in targets}
        outcomes: list[RowOutcome] = []
        # table -> [(position in outcomes, record)]
        pending: dict[str, list[tuple[int, dict[str, Any]]]] = {}
        stop = False

        for i, row in enumerate(batch):
            errors: list[RowError] = []
            lineage: list[LineageEntry] = []
            records: dict[str, dict[str, Any]] = {}
            for mapping, column in targets:
                raw = row.get(mapping.source_column)
                value = apply_transform(mapping.transform, raw)
                problem = validate_value(column, value, enforce_npi_checksum=enforce_npi)
                if problem:
                    errors.append(RowError(field=mapping.source_column, message=problem))
                lineage.append(LineageEntry(
                    source_column=mapping.source_column,
                    target_table=mapping.target_table,
                    target_column=mapping.target_column,
                    transform=mapping.transform,
                    source_digest=value_digest(raw),
                    target_digest=value_digest(value),
                    validation_passed=problem is None,
                    validation_error=problem,
                ))
                records.setdefault(mapping.target_table, {})[mapping.target_column] = value

            if errors:
                outcomes.append(RowOutcome(
                    row_index=offset + i, status=RowStatus.VALIDATION_ERROR,
                    applied_mapping=applied, errors=errors, lineage=lineage,
                ))
                if options.abort_on_first_error:
                    stop = True
                    break
                continue

            outcomes.append(RowOutcome(
                row_index=offset + i, status=RowStatus.SUCCESS,
                applied_mapping=applied, lineage=lineage,
            ))
            for table, record in records.items():
                pending.setdefault(table, []).append((len(outcomes) - 1, record))

        for table, entries in pending.items():
            failures = await self._write(table, [record for _, record in entries])
            for (pos, _), error in zip(entries, failures):
                if error is None:
                    continue
                outcome = outcomes[pos]
                outcomes[pos] = outcome.model_copy(update={
                    "status": RowStatus.WRITE_ERROR,
                    "errors": [*outcome.errors, RowError(field=table, message=error)],
                })
                if options.abort_on_first_error:
                    stop = True
        return outcomes, stop

    async def _write(self, table: str, records: list[dict[str, Any]]) -> list[str | None]:
        """Per-record error messages (None on success) for one table write."""
        try:
            results = await self._writer.write_batch(table, records)
        except Exception as exc:
            logger.error("Destination write to %s failed for %d records: %s", table, len(records), exc)
            return [f"destination write failed: {exc}"] * len(records)
        errors: list[str | None] = [
            None if r.ok else (r.error or "rejected by destination") for r in results
        ]
        if len(errors) < len(records):
            errors.extend(["no result from destination"] * (len(records) - len(errors)))
        return errors[: len(records)]

    # ---- learning ----

    def learn_from_results(
        self, fingerprint: SourceFingerprint, result: MigrationExecutionResult
    ) -> list[LearnedMapping]:
        """Feed a finished run into the learning store and catalog its fingerprint."""
        run = self._state.get(result.run_id)
        if run.state not in (RunState.COMPLETED, RunState.COMPLETED_WITH_ERRORS):
            raise MigrationError(f"Run {run.run_id} is {run.state}; only completed runs are learned from")
        mappings = [self._complete_mapping(fingerprint, m) for m in run.confirmed_mappings]
        updated = self._learning.record_outcome(self._org_id, run.run_id, mappings, result.outcomes)
        self._state.mark_learned(run.run_id)
        self._catalog.save(self._org_id, fingerprint)
        return updated
