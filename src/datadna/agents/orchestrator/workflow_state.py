"""WorkflowStateManager: tracks migration runs and enforces their state machine.

draft -> confirmed -> executing -> completed | completed-with-errors | aborted
"""

from __future__ import annotations

import logging
import threading
import uuid

from datadna.core.exceptions import InvalidTransitionError, RunNotFoundError
from datadna.core.types import utcnow
from datadna.models.mapping import ConfirmedMapping
from datadna.models.migration import TERMINAL_STATES, MigrationRun, RowOutcome, RunState

logger = logging.getLogger(__name__)

TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.DRAFT: frozenset({RunState.CONFIRMED, RunState.ABORTED}),
    RunState.CONFIRMED: frozenset({RunState.EXECUTING, RunState.ABORTED}),
    RunState.EXECUTING: TERMINAL_STATES,
    RunState.COMPLETED: frozenset(),
    RunState.COMPLETED_WITH_ERRORS: frozenset(),
    RunState.ABORTED: frozenset(),
}


class WorkflowStateManager:
    """In-process registry of MigrationRuns for one organization."""

    def __init__(self, org_id: str) -> None:
        self._org_id = org_id
        self._runs: dict[str, MigrationRun] = {}
        self._lock = threading.Lock()

    def create(self, fingerprint_id: str, run_id: str | None = None) -> MigrationRun:
        run = MigrationRun(
            run_id=run_id or uuid.uuid4().hex,
            org_id=self._org_id,
            fingerprint_id=fingerprint_id,
        )
        with self._lock:
            self._runs[run.run_id] = run
        logger.info("Created run %s for fingerprint %s", run.run_id, fingerprint_id)
        return run

    def get(self, run_id: str) -> MigrationRun:
        run = self._runs.get(run_id)
        if run is None:
            raise RunNotFoundError(f"No migration run {run_id!r}")
        return run

    def list(self) -> list[MigrationRun]:
        return list(self._runs.values())

    def transition(self, run_id: str, target: RunState) -> MigrationRun:
        with self._lock:
            run = self.get(run_id)
            if target not in TRANSITIONS[run.state]:
                raise InvalidTransitionError(run_id, str(run.state), str(target))
            run = run.model_copy(update={"state": target, "updated_at": utcnow()})
            self._runs[run_id] = run
        logger.info("Run %s -> %s", run_id, target)
        return run

    def confirm(self, run_id: str, mappings: list[ConfirmedMapping]) -> MigrationRun:
        with self._lock:
            run = self.get(run_id)
            if RunState.CONFIRMED not in TRANSITIONS[run.state]:
                raise InvalidTransitionError(run_id, str(run.state), str(RunState.CONFIRMED))
            run = run.model_copy(update={
                "confirmed_mappings": list(mappings),
                "state": RunState.CONFIRMED,
                "updated_at": utcnow(),
            })
            self._runs[run_id] = run
        logger.info("Run %s -> %s", run_id, RunState.CONFIRMED)
        return run

    def record_outcomes(self, run_id: str, outcomes: list[RowOutcome]) -> MigrationRun:
        with self._lock:
            run = self.get(run_id)
            if run.state in TERMINAL_STATES:
                raise InvalidTransitionError(run_id, str(run.state), "record-outcomes")
            run = run.model_copy(update={"outcomes": list(outcomes), "updated_at": utcnow()})
            self._runs[run_id] = run
        return run

    def mark_learned(self, run_id: str) -> MigrationRun:
        with self._lock:
            run = self.get(run_id).model_copy(update={"learned": True})
            self._runs[run_id] = run
        return run
