"""Clock and deadline helpers.

The run timestamp is read once from the ``Clock`` at run start and frozen;
every artifact name of the run derives from it.

``Deadline`` lets a caller layer an overall run timeout on top of the
per-collaborator defaults: each external call gets
``deadline.timeout_for(default)`` seconds.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from typing import Protocol, runtime_checkable

from pgwarden.models.artifacts import TIMESTAMP_FORMAT


@runtime_checkable
class Clock(Protocol):
    """Source of the run timestamp."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Local wall-clock time, matching the names operators see in ``ls``."""

    def now(self) -> datetime:
        return datetime.now()


def format_run_timestamp(moment: datetime) -> str:
    """Render a moment the way it appears in artifact file names."""
    return moment.strftime(TIMESTAMP_FORMAT)


class Deadline:
    """Optional overall time budget for a run.

    Parameters
    ----------
    seconds:
        Total budget.  ``None`` means unbounded; collaborators then only
        use their own default timeouts.
    monotonic:
        Time source, injectable for tests.
    """

    def __init__(
        self,
        seconds: float | None = None,
        *,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._monotonic = monotonic
        self._expires_at = None if seconds is None else monotonic() + seconds

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._monotonic())

    def timeout_for(self, default: float) -> float:
        """Timeout for one external call: its default, capped by the budget."""
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)
