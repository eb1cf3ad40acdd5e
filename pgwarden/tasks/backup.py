"""Backup task: produces one artifact and classifies the outcome.

Logical:  ``pg_dump`` of the configured database.
Physical: ask the live server for ``data_directory``, verify it exists,
          archive it.  The archive is a file-level copy of a running
          cluster, not a consistent streaming base backup.

Every failure (unwritable destination, unreachable server, unresolvable or
missing data directory, non-zero dump/archive) becomes a failed
StageResult carrying the collaborator diagnostic.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pgwarden.collaborators import Archiver, DataDirectoryResolver, DumpTool
from pgwarden.core.clock import Deadline
from pgwarden.models.artifacts import ArtifactKind
from pgwarden.models.connection import DatabaseConnection
from pgwarden.models.results import StageResult
from pgwarden.tasks.base import BaseTask
from pgwarden.tasks.messages import human_size

logger = logging.getLogger(__name__)

_TASK_TITLES: dict[ArtifactKind, str] = {
    ArtifactKind.LOGICAL: "Task 1: Full Logical Backup",
    ArtifactKind.PHYSICAL: "Task 2: Physical Base Backup",
}


def backup_task_id(kind: ArtifactKind) -> str:
    return f"{kind.value}_backup"


class BackupTask(BaseTask):
    """Runs the logical or physical backup into a given destination.

    Parameters
    ----------
    connection:
        Identity of the database to dump.
    maintenance_connection:
        Identity used for server-level queries (``SHOW data_directory``).
    dump_format:
        ``pg_dump`` format name (``custom`` or ``plain``).
    dump_tool, resolver, archiver:
        External collaborators.
    command_timeout_seconds, probe_timeout_seconds:
        Defaults for dump/archive and for the data-directory query.
    """

    def __init__(
        self,
        connection: DatabaseConnection,
        maintenance_connection: DatabaseConnection,
        dump_format: str,
        *,
        dump_tool: DumpTool,
        resolver: DataDirectoryResolver,
        archiver: Archiver,
        command_timeout_seconds: float = 3600.0,
        probe_timeout_seconds: float = 10.0,
        deadline: Deadline | None = None,
    ) -> None:
        super().__init__(deadline)
        self.connection = connection
        self.maintenance_connection = maintenance_connection
        self.dump_format = dump_format
        self.dump_tool = dump_tool
        self.resolver = resolver
        self.archiver = archiver
        self.command_timeout_seconds = command_timeout_seconds
        self.probe_timeout_seconds = probe_timeout_seconds

    def execute(self, kind: ArtifactKind, destination: Path) -> StageResult:
        task_id = backup_task_id(kind)
        destination = Path(destination)
        logger.info("Starting %s", _TASK_TITLES[kind])
        logger.info("Backup file: %s", destination)

        parent = destination.parent
        try:
            writable = parent.is_dir() and os.access(parent, os.W_OK)
        except OSError as exc:
            return self.failure(
                task_id, f"Backup destination is not writable: {parent}", exc, logger
            )
        if not writable:
            return self.failure(
                task_id, f"Backup destination is not writable: {parent}", None, logger
            )

        if kind is ArtifactKind.LOGICAL:
            result = self._logical(task_id, destination)
        else:
            result = self._physical(task_id, destination)
        if result is not None:
            return result

        try:
            size = destination.stat().st_size
        except OSError as exc:
            return self.failure(
                task_id, f"{kind.label} reported success but produced no file", exc, logger
            )

        logger.info("SUCCESS: %s completed - Size: %s", kind.label, human_size(size))
        return StageResult.ok(task_id, detail=f"{destination.name} created", size_bytes=size)

    # ------------------------------------------------------------------
    # Kinds
    # ------------------------------------------------------------------

    def _logical(self, task_id: str, destination: Path) -> StageResult | None:
        try:
            self.dump_tool.dump(
                self.connection,
                destination,
                self.dump_format,
                self.timeout(self.command_timeout_seconds),
            )
        except Exception as exc:  # noqa: BLE001
            return self.failure(
                task_id,
                f"Logical backup failed for database: {self.connection.dbname}",
                exc,
                logger,
            )
        return None

    def _physical(self, task_id: str, destination: Path) -> StageResult | None:
        try:
            data_dir = self.resolver.query_data_directory(
                self.maintenance_connection, self.timeout(self.probe_timeout_seconds)
            )
        except Exception as exc:  # noqa: BLE001
            return self.failure(
                task_id, "Could not locate PostgreSQL data directory", exc, logger
            )

        try:
            exists = Path(data_dir).is_dir()
        except OSError as exc:
            return self.failure(
                task_id, "Could not locate PostgreSQL data directory", exc, logger
            )
        if not exists:
            return self.failure(
                task_id,
                f"Could not locate PostgreSQL data directory: {data_dir} does not exist",
                None,
                logger,
            )

        logger.info("Data directory: %s", data_dir)
        logger.warning(
            "Archiving a live data directory; the archive is not a consistent snapshot"
        )
        try:
            self.archiver.archive(
                Path(data_dir), destination, self.timeout(self.command_timeout_seconds)
            )
        except Exception as exc:  # noqa: BLE001
            return self.failure(task_id, "Physical backup failed", exc, logger)
        return None
