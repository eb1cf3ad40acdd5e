"""Backup artifact models.

An artifact's path is computed before its task runs and is a pure function
of (database name, run timestamp, kind, logical dump format).  The model is
frozen; the Orchestrator replaces it with ``with_result()`` once the task
has finished.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from pgwarden.models.results import StageResult

TIMESTAMP_FORMAT = "%Y-%m-%d-%H%M%S"
PHYSICAL_PREFIX = "pg_base_backup"


class ArtifactKind(str, Enum):
    """The two artifacts produced by every run."""

    LOGICAL = "logical"
    PHYSICAL = "physical"

    @property
    def label(self) -> str:
        return f"{self.value.title()} backup"


class ArtifactStatus(str, Enum):
    NOT_STARTED = "not_started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def artifact_filename(
    kind: ArtifactKind, database: str, timestamp: str, logical_extension: str = "dump"
) -> str:
    """Deterministic file name for an artifact.

    >>> artifact_filename(ArtifactKind.LOGICAL, "production_db", "2025-11-14-020000")
    'production_db_2025-11-14-020000.dump'
    >>> artifact_filename(ArtifactKind.PHYSICAL, "production_db", "2025-11-14-020000")
    'pg_base_backup_2025-11-14-020000.tar.gz'
    """
    if kind is ArtifactKind.LOGICAL:
        return f"{database}_{timestamp}.{logical_extension}"
    return f"{PHYSICAL_PREFIX}_{timestamp}.tar.gz"


class Artifact(BaseModel):
    """One output file of a BackupTask, owned by a single run."""

    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    path: Path
    size_bytes: int | None = None
    status: ArtifactStatus = ArtifactStatus.NOT_STARTED

    @classmethod
    def planned(
        cls,
        kind: ArtifactKind,
        backup_dir: Path,
        database: str,
        timestamp: str,
        logical_extension: str = "dump",
    ) -> Artifact:
        """Create the not-yet-produced artifact for a run."""
        name = artifact_filename(kind, database, timestamp, logical_extension)
        return cls(kind=kind, path=Path(backup_dir) / name)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def succeeded(self) -> bool:
        return self.status is ArtifactStatus.SUCCEEDED

    def with_result(self, result: StageResult) -> Artifact:
        """Return a copy reflecting the outcome of the task that produced it."""
        if result.success:
            return self.model_copy(
                update={"status": ArtifactStatus.SUCCEEDED, "size_bytes": result.size_bytes}
            )
        return self.model_copy(update={"status": ArtifactStatus.FAILED, "size_bytes": None})
