"""Backup cycle orchestrator: the gated state machine of one run.

    Start -> Preflight
    Preflight   --ok-->       BackupStage
    Preflight   --fail-->     NotifyFailure -> ExitFail
    BackupStage --all-ok-->   UploadStage
    BackupStage --any-fail--> NotifyFailure -> ExitFail
    UploadStage --all-ok-->   NotifySuccess -> Cleanup -> ExitOk
    UploadStage --any-fail--> NotifyFailure -> ExitFail

Sibling tasks of a stage are all attempted before the stage gate evaluates.
Exactly one notification is sent on every terminal path, and a failed
notification never changes the exit code.  The retention sweep only runs
after both backups and both uploads succeeded.
"""

from __future__ import annotations

import logging
from functools import partial

from pgwarden.collaborators import Collaborators
from pgwarden.config import WardenSettings
from pgwarden.core.clock import Clock, Deadline, SystemClock, format_run_timestamp
from pgwarden.core.run_log import RunLog
from pgwarden.core.run_state import RunTracker
from pgwarden.core.stage_gate import GateOutcome, run_gate
from pgwarden.models.artifacts import Artifact, ArtifactKind
from pgwarden.models.results import StageResult
from pgwarden.models.runs import BackupJobRun, ExitCode, FailureCategory
from pgwarden.tasks import (
    BackupTask,
    Notifier,
    RetentionCleaner,
    UploadTask,
    backup_task_id,
    upload_task_id,
)
from pgwarden.tasks import messages

logger = logging.getLogger(__name__)

BANNER = "=" * 42
PREFLIGHT_TASK_ID = "preflight"


class Orchestrator:
    """Drives one backup cycle end to end.

    Parameters
    ----------
    config:
        Immutable settings for the cycle.
    collaborators:
        External backends.  Built from *config* when omitted.
    clock:
        Source of the run timestamp.
    cleaner:
        Retention cleaner; replaceable for tests.
    """

    def __init__(
        self,
        config: WardenSettings,
        *,
        collaborators: Collaborators | None = None,
        clock: Clock | None = None,
        cleaner: RetentionCleaner | None = None,
    ) -> None:
        self.config = config
        self.collaborators = collaborators or Collaborators.from_config(config)
        self.clock = clock or SystemClock()
        self.cleaner = cleaner or RetentionCleaner()
        self.last_run: BackupJobRun | None = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self) -> ExitCode:
        """Run the full cycle and return its exit code."""
        deadline = Deadline(self.config.run_timeout_seconds)
        timestamp = format_run_timestamp(self.clock.now())
        tracker = RunTracker(BackupJobRun(run_timestamp=timestamp))
        self.last_run = tracker.run

        with RunLog(self.config.log_file, self.config.log_level) as run_log:
            return self._run(tracker, run_log, deadline)

    def check(self) -> StageResult:
        """Preflight only: backup directory and server reachability."""
        return self._preflight(Deadline(self.config.run_timeout_seconds))

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(self, tracker: RunTracker, run_log: RunLog, deadline: Deadline) -> ExitCode:
        config = self.config
        logger.info(BANNER)
        logger.info("Starting PostgreSQL Backup Process (run %s)", tracker.run.run_timestamp)
        logger.info(BANNER)
        tracker.start()

        notifier = Notifier(
            self.collaborators.transport,
            config.from_email,
            config.admin_email,
            timeout_seconds=config.mail_timeout_seconds,
            deadline=deadline,
        )

        # --- Preflight --------------------------------------------------
        preflight = self._preflight(deadline)
        tracker.record(preflight)
        if not preflight.success:
            tracker.fail(FailureCategory.PREFLIGHT)
            body = messages.preflight_failure_body(
                preflight.detail, run_log.tail(config.log_tail_lines), config.log_tail_lines
            )
            self._notify(tracker, notifier, messages.SUBJECT_BACKUP_FAILURE, body)
            logger.info("Backup process aborted at pre-flight")
            return tracker.run.exit_code
        logger.info("Pre-flight checks completed successfully")

        # --- Stage 1: backups -------------------------------------------
        backup_gate = self._backup_stage(tracker, deadline)
        if not backup_gate.ok:
            logger.error("Backup process FAILED - sending notification")
            tracker.fail(FailureCategory.BACKUP)
            body = messages.backup_failure_body(
                backup_gate.failures,
                run_log.tail(config.log_tail_lines),
                config.log_tail_lines,
            )
            self._notify(tracker, notifier, messages.SUBJECT_BACKUP_FAILURE, body)
            logger.info("Backup process terminated due to errors")
            return tracker.run.exit_code
        logger.info("All backup tasks completed successfully")

        # --- Stage 2: uploads -------------------------------------------
        upload_gate = self._upload_stage(tracker, deadline)
        if not upload_gate.ok:
            logger.error("Upload to %s FAILED - sending notification", config.remote_location)
            tracker.fail(FailureCategory.UPLOAD)
            local = [
                a for a in tracker.run.artifacts.values() if a.succeeded and a.path.exists()
            ]
            body = messages.upload_failure_body(
                local,
                upload_gate.failures,
                config.remote_location,
                run_log.tail(config.log_tail_lines),
                config.log_tail_lines,
            )
            self._notify(tracker, notifier, messages.SUBJECT_UPLOAD_FAILURE, body)
            logger.info("Backup process completed but uploads failed")
            return tracker.run.exit_code
        logger.info("All backups uploaded successfully to %s", config.remote_location)

        # --- Success ----------------------------------------------------
        tracker.succeed()
        body = messages.success_body(
            config.db_name,
            tracker.run.run_timestamp,
            [tracker.run.artifacts[kind] for kind in ArtifactKind],
            config.remote_location,
        )
        self._notify(tracker, notifier, messages.SUBJECT_SUCCESS, body)

        self._cleanup()

        logger.info(BANNER)
        logger.info("Backup Process Completed Successfully")
        logger.info(BANNER)
        return tracker.run.exit_code

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _preflight(self, deadline: Deadline) -> StageResult:
        config = self.config
        backup_dir = config.backup_dir
        if not backup_dir.is_dir():
            logger.info("Creating backup directory: %s", backup_dir)
            try:
                backup_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.error("ERROR: Cannot create backup directory %s: %s", backup_dir, exc)
                return StageResult.failed(
                    PREFLIGHT_TASK_ID, f"Cannot create backup directory {backup_dir}: {exc}"
                )

        try:
            self.collaborators.probe.ping(
                config.maintenance_connection,
                deadline.timeout_for(config.probe_timeout_seconds),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("ERROR: PostgreSQL is not running or not accessible")
            logger.error(str(exc))
            return StageResult.failed(
                PREFLIGHT_TASK_ID,
                f"PostgreSQL service is not running or not accessible.\n{exc}",
            )
        return StageResult.ok(PREFLIGHT_TASK_ID, detail="PostgreSQL is reachable")

    def _backup_stage(self, tracker: RunTracker, deadline: Deadline) -> GateOutcome:
        config = self.config
        planned = {
            kind: Artifact.planned(
                kind,
                config.backup_dir,
                config.db_name,
                tracker.run.run_timestamp,
                config.logical_extension,
            )
            for kind in ArtifactKind
        }
        for artifact in planned.values():
            tracker.set_artifact(artifact)

        task = BackupTask(
            config.connection,
            config.maintenance_connection,
            config.dump_format,
            dump_tool=self.collaborators.dump_tool,
            resolver=self.collaborators.resolver,
            archiver=self.collaborators.archiver,
            command_timeout_seconds=config.command_timeout_seconds,
            probe_timeout_seconds=config.probe_timeout_seconds,
            deadline=deadline,
        )
        gate = run_gate(
            "backup",
            [
                (backup_task_id(kind), partial(task.execute, kind, artifact.path))
                for kind, artifact in planned.items()
            ],
            parallel=config.parallel_stages,
            on_result=tracker.record,
        )
        for (kind, artifact), result in zip(planned.items(), gate.results):
            tracker.set_artifact(artifact.with_result(result))
        return gate

    def _upload_stage(self, tracker: RunTracker, deadline: Deadline) -> GateOutcome:
        config = self.config
        logger.info("Starting cloud upload to %s", config.remote_location)
        task = UploadTask(
            self.collaborators.copier,
            config.remote_location,
            timeout_seconds=config.command_timeout_seconds,
            deadline=deadline,
        )
        artifacts = [tracker.run.artifacts[kind] for kind in ArtifactKind]
        return run_gate(
            "upload",
            [(upload_task_id(a.kind), partial(task.execute, a)) for a in artifacts],
            parallel=config.parallel_stages,
            on_result=tracker.record,
        )

    def _notify(
        self, tracker: RunTracker, notifier: Notifier, subject: str, body: str
    ) -> None:
        result = notifier.notify(subject, body)
        tracker.record(result)

    def _cleanup(self) -> None:
        config = self.config
        try:
            self.cleaner.sweep(
                config.backup_dir,
                config.effective_retention_patterns,
                config.retention_days,
            )
        except OSError as exc:
            logger.error("ERROR: Local cleanup failed: %s", exc)


def run_backup_cycle(config: WardenSettings) -> int:
    """Single entry point for the CLI layer: run one cycle, return the exit code."""
    return int(Orchestrator(config).run())
