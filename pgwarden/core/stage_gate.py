"""Stage gate: join/barrier over the sibling tasks of one stage.

Every task of a stage is attempted to completion before the gate evaluates.
A failing (or raising) task never cancels or skips its siblings: an
unexpected exception is converted into a failed ``StageResult`` so the
barrier always receives one result per task.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel, ConfigDict

from pgwarden.models.results import StageResult

logger = logging.getLogger(__name__)

StageTask = tuple[str, Callable[[], StageResult]]


class GateOutcome(BaseModel):
    """Aggregated results of one stage, in task order."""

    model_config = ConfigDict(frozen=True)

    stage: str
    results: tuple[StageResult, ...]

    @property
    def ok(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def failures(self) -> list[StageResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        failed = len(self.failures)
        return f"{self.stage}: {len(self.results) - failed}/{len(self.results)} task(s) succeeded"


def _attempt(task_id: str, fn: Callable[[], StageResult]) -> StageResult:
    try:
        return fn()
    except Exception as exc:  # noqa: BLE001
        logger.error("ERROR: %s raised unexpectedly: %s", task_id, exc)
        return StageResult.failed(task_id, f"Unexpected error in {task_id}: {exc}")


def run_gate(
    stage: str,
    tasks: Sequence[StageTask],
    *,
    parallel: bool = True,
    on_result: Callable[[StageResult], None] | None = None,
) -> GateOutcome:
    """Run every task of *stage* and join on all of them.

    Parameters
    ----------
    stage:
        Stage name used in logs and in the outcome.
    tasks:
        ``(task_id, callable)`` pairs; each callable returns a StageResult.
    parallel:
        Run the tasks on a thread pool.  The gate is a barrier either way.
    on_result:
        Called once per task, in task order, on the calling thread after
        every task has finished.
    """
    if not tasks:
        return GateOutcome(stage=stage, results=())

    if parallel and len(tasks) > 1:
        with ThreadPoolExecutor(
            max_workers=len(tasks), thread_name_prefix=f"pgwarden-{stage}"
        ) as pool:
            futures = [pool.submit(_attempt, task_id, fn) for task_id, fn in tasks]
            results = [future.result() for future in futures]
    else:
        results = [_attempt(task_id, fn) for task_id, fn in tasks]

    if on_result is not None:
        for result in results:
            on_result(result)

    outcome = GateOutcome(stage=stage, results=tuple(results))
    logger.debug(outcome.summary())
    return outcome
