"""Task outcome models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class StageResult(BaseModel):
    """Immutable outcome of one task (backup, upload, notification, ...).

    ``detail`` is human-readable and, on failure, embeds the collaborator's
    diagnostic output verbatim.
    """

    model_config = ConfigDict(frozen=True)

    task_id: str
    success: bool
    detail: str = ""
    size_bytes: int | None = None
    finished_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, task_id: str, detail: str = "", size_bytes: int | None = None) -> StageResult:
        return cls(task_id=task_id, success=True, detail=detail, size_bytes=size_bytes)

    @classmethod
    def failed(cls, task_id: str, detail: str) -> StageResult:
        return cls(task_id=task_id, success=False, detail=detail)


class RetentionCandidate(BaseModel):
    """A file in the backup directory eligible for deletion.  Never cached."""

    model_config = ConfigDict(frozen=True)

    path: Path
    age: timedelta

    @property
    def name(self) -> str:
        return self.path.name
