"""Run-level models: status set and valid transitions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum

from pydantic import BaseModel, Field

from pgwarden.models.artifacts import Artifact, ArtifactKind
from pgwarden.models.results import StageResult


class RunStatus(str, Enum):
    """Lifecycle of one BackupJobRun."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED_AT_PREFLIGHT = "failed_at_preflight"
    FAILED_AT_BACKUP = "failed_at_backup"
    FAILED_AT_UPLOAD = "failed_at_upload"

    @property
    def is_terminal(self) -> bool:
        return not VALID_RUN_TRANSITIONS[self]


# Terminal states have no outgoing transitions.
VALID_RUN_TRANSITIONS: dict[RunStatus, set[RunStatus]] = {
    RunStatus.PENDING: {RunStatus.RUNNING},
    RunStatus.RUNNING: {
        RunStatus.SUCCEEDED,
        RunStatus.FAILED_AT_PREFLIGHT,
        RunStatus.FAILED_AT_BACKUP,
        RunStatus.FAILED_AT_UPLOAD,
    },
    RunStatus.SUCCEEDED: set(),
    RunStatus.FAILED_AT_PREFLIGHT: set(),
    RunStatus.FAILED_AT_BACKUP: set(),
    RunStatus.FAILED_AT_UPLOAD: set(),
}


class FailureCategory(str, Enum):
    PREFLIGHT = "preflight"
    BACKUP = "backup"
    UPLOAD = "upload"


class ExitCode(IntEnum):
    """Process exit codes.  Every failure category shares ``FAILURE``."""

    OK = 0
    FAILURE = 1


class BackupJobRun(BaseModel):
    """One invocation of the whole pipeline.

    Mutated only through ``pgwarden.core.run_state.RunTracker``, which
    validates transitions and serializes outcome appends.
    """

    run_timestamp: str
    status: RunStatus = RunStatus.PENDING
    failure_category: FailureCategory | None = None
    artifacts: dict[ArtifactKind, Artifact] = Field(default_factory=dict)
    outcomes: list[StageResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.OK if self.status is RunStatus.SUCCEEDED else ExitCode.FAILURE
