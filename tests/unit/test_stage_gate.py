"""Unit tests for the stage gate barrier."""

from __future__ import annotations

import threading

import pytest

from pgwarden.core.stage_gate import GateOutcome, run_gate
from pgwarden.models.results import StageResult


def _ok(task_id: str):
    return lambda: StageResult.ok(task_id)


def _fail(task_id: str):
    return lambda: StageResult.failed(task_id, "boom")


def _raise(task_id: str):
    def fn() -> StageResult:
        raise RuntimeError(f"{task_id} exploded")

    return fn


# ---------------------------------------------------------------------------
# Test: Aggregation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("parallel", [True, False])
class TestGateAggregation:
    """The gate passes iff every sibling succeeded."""

    def test_all_ok(self, parallel: bool):
        outcome = run_gate("backup", [("a", _ok("a")), ("b", _ok("b"))], parallel=parallel)
        assert outcome.ok
        assert outcome.failures == []

    def test_one_failure_fails_gate(self, parallel: bool):
        outcome = run_gate("backup", [("a", _fail("a")), ("b", _ok("b"))], parallel=parallel)
        assert not outcome.ok
        assert [r.task_id for r in outcome.failures] == ["a"]

    def test_results_in_task_order(self, parallel: bool):
        tasks = [(t, _ok(t)) for t in ("logical_backup", "physical_backup")]
        outcome = run_gate("backup", tasks, parallel=parallel)
        assert [r.task_id for r in outcome.results] == ["logical_backup", "physical_backup"]

    def test_raising_task_becomes_failure(self, parallel: bool):
        outcome = run_gate("upload", [("a", _raise("a")), ("b", _ok("b"))], parallel=parallel)
        assert not outcome.ok
        assert outcome.results[0].task_id == "a"
        assert "a exploded" in outcome.results[0].detail
        assert outcome.results[1].success

    def test_sibling_attempted_after_failure(self, parallel: bool):
        attempted: list[str] = []

        def record(task_id: str, success: bool):
            def fn() -> StageResult:
                attempted.append(task_id)
                if success:
                    return StageResult.ok(task_id)
                return StageResult.failed(task_id, "no")

            return fn

        run_gate("backup", [("a", record("a", False)), ("b", record("b", True))], parallel=parallel)
        assert sorted(attempted) == ["a", "b"]

    def test_on_result_called_once_per_task(self, parallel: bool):
        seen: list[str] = []
        run_gate(
            "backup",
            [("a", _ok("a")), ("b", _fail("b"))],
            parallel=parallel,
            on_result=lambda r: seen.append(r.task_id),
        )
        assert sorted(seen) == ["a", "b"]


class TestGateBehaviour:
    def test_empty_stage_is_ok(self):
        outcome = run_gate("backup", [])
        assert outcome.ok
        assert outcome.results == ()

    def test_parallel_tasks_overlap(self):
        """Both tasks must be running at once to pass the barrier."""
        barrier = threading.Barrier(2, timeout=5)

        def task(task_id: str):
            def fn() -> StageResult:
                barrier.wait()
                return StageResult.ok(task_id)

            return fn

        outcome = run_gate("backup", [("a", task("a")), ("b", task("b"))], parallel=True)
        assert outcome.ok

    def test_on_result_runs_on_calling_thread_in_order(self):
        caller = threading.current_thread()
        seen: list[tuple[str, threading.Thread]] = []
        run_gate(
            "upload",
            [("a", _ok("a")), ("b", _ok("b"))],
            parallel=True,
            on_result=lambda r: seen.append((r.task_id, threading.current_thread())),
        )
        assert [task_id for task_id, _ in seen] == ["a", "b"]
        assert all(thread is caller for _, thread in seen)

    def test_summary(self):
        outcome = GateOutcome(
            stage="upload",
            results=(StageResult.ok("a"), StageResult.failed("b", "x")),
        )
        assert outcome.summary() == "upload: 1/2 task(s) succeeded"
