"""Retention cleaner: deletes local artifacts older than the window.

A file is deleted iff its name matches one of the artifact patterns and its
modification age strictly exceeds ``max_age_days`` days.  Upload status is
not considered.  The Orchestrator only invokes the sweep after a fully
successful run, which keeps the artifacts of failed runs for manual
recovery regardless of their age.
"""

from __future__ import annotations

import fnmatch
import logging
import time
from collections.abc import Callable, Sequence
from datetime import timedelta
from pathlib import Path

from pgwarden.models.results import RetentionCandidate

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class RetentionCleaner:
    """Age- and pattern-based sweep of a backup directory.

    Parameters
    ----------
    now:
        Epoch-seconds time source; injectable for deterministic tests.
        Ages are differences of epoch seconds, so DST changes do not
        shift the window.
    """

    def __init__(self, now: Callable[[], float] = time.time) -> None:
        self._now = now

    def candidates(
        self, directory: Path, patterns: Sequence[str], max_age_days: int
    ) -> list[RetentionCandidate]:
        """Files in *directory* eligible for deletion, oldest first."""
        directory = Path(directory)
        if not directory.is_dir():
            return []

        window = max_age_days * SECONDS_PER_DAY
        now = self._now()
        found: list[RetentionCandidate] = []
        for path in directory.iterdir():
            if not any(fnmatch.fnmatch(path.name, p) for p in patterns):
                continue
            try:
                if not path.is_file():
                    continue
                modified = path.stat().st_mtime
            except OSError:
                continue
            age = now - modified
            if age > window:
                found.append(RetentionCandidate(path=path, age=timedelta(seconds=age)))

        found.sort(key=lambda c: c.age, reverse=True)
        return found

    def sweep(self, directory: Path, patterns: Sequence[str], max_age_days: int) -> int:
        """Delete every candidate and return how many were removed."""
        logger.info(
            "Starting local cleanup - removing backups older than %s days", max_age_days
        )
        deleted = 0
        for candidate in self.candidates(directory, patterns, max_age_days):
            logger.info("Deleting old backup: %s", candidate.name)
            try:
                candidate.path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error("ERROR: Could not delete %s: %s", candidate.name, exc)
                continue
            deleted += 1

        if deleted:
            logger.info("Cleanup completed - removed %d old backup file(s)", deleted)
        else:
            logger.info("No old backup files to remove")
        return deleted
