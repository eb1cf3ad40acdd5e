"""Upload task: copies one completed artifact to remote storage.

Non-destructive: the local file is never moved or removed, whatever the
outcome.
"""

from __future__ import annotations

import logging

from pgwarden.collaborators import RemoteCopier
from pgwarden.core.clock import Deadline
from pgwarden.models.artifacts import Artifact, ArtifactKind
from pgwarden.models.results import StageResult
from pgwarden.tasks.base import BaseTask

logger = logging.getLogger(__name__)


def upload_task_id(kind: ArtifactKind) -> str:
    return f"{kind.value}_upload"


class UploadTask(BaseTask):
    """Copies artifacts to ``remote_location`` through a RemoteCopier."""

    def __init__(
        self,
        copier: RemoteCopier,
        remote_location: str,
        *,
        timeout_seconds: float = 3600.0,
        deadline: Deadline | None = None,
    ) -> None:
        super().__init__(deadline)
        self.copier = copier
        self.remote_location = remote_location
        self.timeout_seconds = timeout_seconds

    def execute(self, artifact: Artifact) -> StageResult:
        """Upload *artifact*.

        Raises
        ------
        ValueError
            If the artifact did not succeed or its file is missing.  Such a
            call is a caller error and nothing is attempted.
        """
        if not artifact.succeeded:
            raise ValueError(
                f"Cannot upload {artifact.name}: artifact status is {artifact.status.value}"
            )
        if not artifact.path.is_file():
            raise ValueError(f"Cannot upload {artifact.name}: file does not exist")

        task_id = upload_task_id(artifact.kind)
        logger.info("Uploading %s: %s", artifact.kind.label.lower(), artifact.name)
        try:
            self.copier.copy(
                artifact.path, self.remote_location, self.timeout(self.timeout_seconds)
            )
        except Exception as exc:  # noqa: BLE001
            return self.failure(
                task_id,
                f"Failed to upload {artifact.kind.label.lower()} to {self.remote_location}",
                exc,
                logger,
            )

        logger.info("Uploaded %s to %s", artifact.name, self.remote_location)
        return StageResult.ok(task_id, detail=f"{artifact.name} -> {self.remote_location}")
