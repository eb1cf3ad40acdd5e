"""pgwarden data models: Pydantic v2; value objects are frozen."""

from pgwarden.models.artifacts import (
    Artifact,
    ArtifactKind,
    ArtifactStatus,
    artifact_filename,
)
from pgwarden.models.connection import DatabaseConnection
from pgwarden.models.results import RetentionCandidate, StageResult
from pgwarden.models.runs import (
    VALID_RUN_TRANSITIONS,
    BackupJobRun,
    ExitCode,
    FailureCategory,
    RunStatus,
)

__all__ = [
    # artifacts
    "Artifact",
    "ArtifactKind",
    "ArtifactStatus",
    "artifact_filename",
    # connection
    "DatabaseConnection",
    # results
    "StageResult",
    "RetentionCandidate",
    # runs
    "BackupJobRun",
    "RunStatus",
    "FailureCategory",
    "ExitCode",
    "VALID_RUN_TRANSITIONS",
]
