"""Run log sink: the durable, append-only log file of the backup cycle.

Every pgwarden module logs through ``logging.getLogger(__name__)``.
``RunLog`` attaches a ``FileHandler`` to the ``pgwarden`` logger for the
duration of a run, so all of those records land in one timestamped file:

    [2025-11-14 02:00:01] Starting PostgreSQL Backup Process

``tail(n)`` reads back the last lines for failure notifications.  The stdlib
handler serializes ``emit`` with its own lock, so tasks running on worker
threads can log concurrently.
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from types import TracebackType

ROOT_LOGGER_NAME = "pgwarden"
LOG_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


class RunLog:
    """Context manager owning the run's file handler.

    Parameters
    ----------
    path:
        Log file; created (with parents) if missing, always appended to.
    level:
        Level name or number applied to the ``pgwarden`` logger.
    """

    def __init__(self, path: Path | str, level: str | int = "INFO") -> None:
        self.path = Path(path)
        self._level = level
        self._handler: logging.FileHandler | None = None
        self._previous_level: int | None = None

    @property
    def attached(self) -> bool:
        return self._handler is not None

    def open(self) -> RunLog:
        if self._handler is not None:
            return self
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        handler.setFormatter(build_formatter())

        root = logging.getLogger(ROOT_LOGGER_NAME)
        self._previous_level = root.level
        root.setLevel(self._level)
        root.addHandler(handler)
        self._handler = handler
        return self

    def close(self) -> None:
        if self._handler is None:
            return
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.removeHandler(self._handler)
        self._handler.close()
        self._handler = None
        if self._previous_level is not None:
            root.setLevel(self._previous_level)

    def flush(self) -> None:
        if self._handler is not None:
            self._handler.flush()

    def tail(self, lines: int) -> list[str]:
        """Return the last *lines* lines of the log file (oldest first)."""
        if lines <= 0:
            return []
        self.flush()
        try:
            with self.path.open("r", encoding="utf-8", errors="replace") as fh:
                return [line.rstrip("\n") for line in deque(fh, maxlen=lines)]
        except FileNotFoundError:
            return []

    def __enter__(self) -> RunLog:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
