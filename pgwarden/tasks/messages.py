"""Notification subjects and bodies.

Every failure body ends with the most recent run-log lines so the operator
has context without logging into the server.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pgwarden.models.artifacts import Artifact
from pgwarden.models.results import StageResult

SUBJECT_BACKUP_FAILURE = "FAILURE: PostgreSQL Backup Task"
SUBJECT_UPLOAD_FAILURE = "FAILURE: PostgreSQL Backup Upload"
SUBJECT_SUCCESS = "SUCCESS: PostgreSQL Backup and Upload"


def human_size(size_bytes: int | None) -> str:
    """Size the way ``du -h`` prints it.

    >>> human_size(512)
    '512B'
    >>> human_size(1536)
    '1.5K'
    >>> human_size(50 * 1024 * 1024)
    '50M'
    """
    if size_bytes is None:
        return "unknown"
    value = float(size_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if value < 1024 or unit == "T":
            if unit == "B":
                return f"{int(value)}B"
            return f"{value:.1f}{unit}" if value < 10 else f"{value:.0f}{unit}"
        value /= 1024
    return f"{size_bytes}B"


def _log_section(tail: Sequence[str], lines: int) -> list[str]:
    return [f"=== Last {lines} Log Entries ===", *tail]


def _failure_lines(failures: Iterable[StageResult]) -> list[str]:
    lines: list[str] = []
    for result in failures:
        first, _, rest = result.detail.partition("\n")
        lines.append(f"- {result.task_id}: {first}")
        lines.extend(f"    {line}" for line in rest.splitlines() if line.strip())
    return lines


def preflight_failure_body(reason: str, tail: Sequence[str], lines: int) -> str:
    return "\n".join([
        "Pre-flight checks failed; no backup was attempted.",
        "",
        reason,
        "",
        "Please check the PostgreSQL service status and the backup directory.",
        "",
        *_log_section(tail, lines),
    ])


def backup_failure_body(
    failures: Sequence[StageResult], tail: Sequence[str], lines: int
) -> str:
    return "\n".join([
        "One or more backup tasks failed.",
        "",
        "Please review the details below:",
        "",
        *_failure_lines(failures),
        "",
        *_log_section(tail, lines),
    ])


def upload_failure_body(
    local_artifacts: Sequence[Artifact],
    failures: Sequence[StageResult],
    remote_location: str,
    tail: Sequence[str],
    lines: int,
) -> str:
    local = [f"- {a.name} ({human_size(a.size_bytes)})" for a in local_artifacts] or ["- none"]
    return "\n".join([
        f"Backups were created locally but failed to upload to {remote_location}",
        "",
        "Local backup files:",
        *local,
        "",
        "Failed uploads:",
        *_failure_lines(failures),
        "",
        "Please check rclone configuration and network connectivity.",
        "",
        *_log_section(tail, lines),
    ])


def success_body(
    database: str,
    timestamp: str,
    artifacts: Sequence[Artifact],
    remote_location: str,
) -> str:
    files = [
        f"{i}. {a.kind.label}: {a.name} ({human_size(a.size_bytes)})"
        for i, a in enumerate(artifacts, start=1)
    ]
    return "\n".join([
        "PostgreSQL backup and upload completed successfully!",
        "",
        f"Database: {database}",
        f"Timestamp: {timestamp}",
        "",
        "Files created and uploaded:",
        *files,
        "",
        f"Backup location: {remote_location}",
    ])
