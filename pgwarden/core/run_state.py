"""Run state tracker: validated status transitions for a BackupJobRun.

Enforces:
- Valid status transitions only (VALID_RUN_TRANSITIONS table)
- Terminal statuses are final for the lifetime of the run
- Outcome appends are serialized (tasks may finish on worker threads)
- Every transition is logged
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from pgwarden.models.artifacts import Artifact
from pgwarden.models.results import StageResult
from pgwarden.models.runs import (
    VALID_RUN_TRANSITIONS,
    BackupJobRun,
    FailureCategory,
    RunStatus,
)

logger = logging.getLogger(__name__)

_FAILURE_STATUS: dict[FailureCategory, RunStatus] = {
    FailureCategory.PREFLIGHT: RunStatus.FAILED_AT_PREFLIGHT,
    FailureCategory.BACKUP: RunStatus.FAILED_AT_BACKUP,
    FailureCategory.UPLOAD: RunStatus.FAILED_AT_UPLOAD,
}


class InvalidTransitionError(RuntimeError):
    """Raised when a requested run status transition is not valid."""


class RunTracker:
    """Owns one BackupJobRun and is the only writer of its state.

    Parameters
    ----------
    run:
        The run to track.  Expected to be PENDING.
    """

    def __init__(self, run: BackupJobRun) -> None:
        self._run = run
        self._lock = threading.Lock()

    @property
    def run(self) -> BackupJobRun:
        return self._run

    @property
    def status(self) -> RunStatus:
        return self._run.status

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(
        self, to_status: RunStatus, category: FailureCategory | None = None
    ) -> None:
        """Move the run to *to_status*, validating against the table.

        *category* is recorded together with the status, under the same lock.
        """
        with self._lock:
            from_status = self._run.status
            if to_status not in VALID_RUN_TRANSITIONS[from_status]:
                raise InvalidTransitionError(
                    f"Invalid run transition: {from_status.value} -> {to_status.value}"
                )
            self._run.status = to_status
            if category is not None:
                self._run.failure_category = category
            if to_status.is_terminal:
                self._run.finished_at = datetime.now(timezone.utc)
        logger.info("Run %s: %s -> %s", self._run.run_timestamp, from_status.value, to_status.value)

    def start(self) -> None:
        self.transition(RunStatus.RUNNING)

    def succeed(self) -> None:
        self.transition(RunStatus.SUCCEEDED)

    def fail(self, category: FailureCategory) -> None:
        self.transition(_FAILURE_STATUS[category], category)

    # ------------------------------------------------------------------
    # Outcomes and artifacts
    # ------------------------------------------------------------------

    def record(self, result: StageResult) -> None:
        """Append a task outcome.  Safe to call from worker threads."""
        with self._lock:
            self._run.outcomes.append(result)

    def set_artifact(self, artifact: Artifact) -> None:
        with self._lock:
            self._run.artifacts[artifact.kind] = artifact
