"""Shared failure handling for pipeline tasks.

A task never lets an exception cross its boundary: every failure becomes a
``StageResult`` whose detail carries the collaborator diagnostic verbatim.
"""

from __future__ import annotations

import logging

from pgwarden.core.clock import Deadline
from pgwarden.errors import CollaboratorError
from pgwarden.models.results import StageResult


class BaseTask:
    """Common plumbing for BackupTask, UploadTask and Notifier.

    Parameters
    ----------
    deadline:
        Overall run budget; caps each collaborator's own timeout.
    """

    def __init__(self, deadline: Deadline | None = None) -> None:
        self.deadline = deadline or Deadline()

    def timeout(self, default: float) -> float:
        return self.deadline.timeout_for(default)

    @staticmethod
    def failure(
        task_id: str,
        message: str,
        exc: BaseException | None,
        log: logging.Logger,
    ) -> StageResult:
        """Log ``ERROR: <message>`` with the diagnostic and build the result."""
        if isinstance(exc, CollaboratorError):
            diagnostic = str(exc)
        elif exc is not None:
            diagnostic = f"{type(exc).__name__}: {exc}"
        else:
            diagnostic = ""

        log.error("ERROR: %s", message)
        if diagnostic:
            log.error(diagnostic)

        detail = f"{message}\n{diagnostic}" if diagnostic else message
        return StageResult.failed(task_id, detail)
