# ============================================================================
# JOB LIFECYCLE TESTS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Tests - Job operations and the cycle loop
# PURPOSE: End-to-end runs against the in-memory store
# CREATED: 17 OCT 2026
# ============================================================================
"""
Job Lifecycle Tests

Covers:
1. create_job defaults and validation
2. End-to-end run to max_cycles
3. Gapless cycle numbering
4. Pause mid-execution, then resume at the next cycle
5. Cancel (with and without a runner)
6. Collaborator failure -> status=error
7. Concurrent start conflicts
8. Shutdown pauses running jobs

Run with:
    pytest tests/test_lifecycle.py -v
"""

import asyncio
from datetime import timedelta
import pytest

from core.contracts import CyclePhase, JobStatus, TaskStatus, utc_now
from core.errors import (
    CycleNotFoundError,
    InvalidJobConfigError,
    InvalidJobStateError,
    JobAlreadyRunningError,
    JobNotFoundError,
    JobNotRunningError,
)
from orchestrator.lifecycle import JobLifecycleManager
from fakes import (
    FixedPlanner,
    InMemoryJobStore,
    RecordingBroadcaster,
    RecordingExecutor,
    ScriptedDiscoverer,
    fast_defaults,
    make_executors,
)


CONFIG = {
    "repository_owner": "acme",
    "repository_name": "widgets",
    "base_branch": "main",
    "request_document": "- [ ] Add validation\n- [ ] Add tests",
}


def _manager(discoverer=None, executor=None, planner=None, store=None, **defaults):
    return JobLifecycleManager(
        store or InMemoryJobStore(),
        discoverer=discoverer or ScriptedDiscoverer(),
        planner=planner or FixedPlanner(),
        executors=make_executors(executor or RecordingExecutor()),
        events=RecordingBroadcaster(),
        defaults=fast_defaults(**defaults),
    )


async def _run_to_end(manager, job_id, timeout=5.0):
    assert await manager.wait_for_runner(job_id, timeout=timeout)
    return await manager.get_job(job_id)


# ============================================================================
# CREATE
# ============================================================================

class TestCreateJob:

    def test_defaults(self):
        async def run():
            manager = _manager()
            return manager, await manager.create_job("owner-1", dict(CONFIG, max_cycles=2))

        manager, job = asyncio.run(run())

        assert job.status == JobStatus.PENDING
        assert job.current_cycle == 0
        assert len(job.job_id) == 32
        assert job.working_branch == f"orchestrator/{job.job_id[:8]}"
        assert job.session_path == f"acme__widgets__orchestrator-{job.job_id[:8]}"
        assert job.max_parallel_tasks == 3
        assert job.provider == "claude"
        assert job.max_cycles == 2
        assert job.job_id in manager.store.jobs.rows

    def test_explicit_branch_and_plan(self):
        async def run():
            manager = _manager()
            return await manager.create_job("owner-1", dict(
                CONFIG,
                working_branch="feature/x",
                initial_task_list="- [ ] Plan",
                max_parallel_tasks=5,
                provider="local",
            ))

        job = asyncio.run(run())
        assert job.working_branch == "feature/x"
        assert job.session_path == "acme__widgets__feature-x"
        assert job.task_list == "- [ ] Plan"
        assert (job.max_parallel_tasks, job.provider) == (5, "local")

    @pytest.mark.parametrize("bad", [
        {k: v for k, v in CONFIG.items() if k != "request_document"},
        dict(CONFIG, repository_name="   "),
        dict(CONFIG, max_cycles=0),
        dict(CONFIG, max_parallel_tasks=0),
    ])
    def test_invalid_config(self, bad):
        async def run():
            await _manager().create_job("owner-1", bad)

        with pytest.raises(InvalidJobConfigError):
            asyncio.run(run())

    def test_owner_required(self):
        with pytest.raises(InvalidJobConfigError):
            asyncio.run(_manager().create_job("", CONFIG))


# ============================================================================
# RUNNING
# ============================================================================

class TestEndToEnd:

    def test_single_cycle_run(self):
        async def run():
            discoverer = ScriptedDiscoverer(["task a", "task b"], repeat=True)
            manager = _manager(discoverer, planner=FixedPlanner("All done"))
            job = await manager.create_job("owner-1", dict(CONFIG, max_cycles=1))
            started = await manager.start_job(job.job_id, "sk-test")
            final = await _run_to_end(manager, job.job_id)
            return manager, started, final

        manager, started, final = asyncio.run(run())
        store = manager.store

        assert started.status == JobStatus.RUNNING
        assert started.started_at is not None
        assert final.status == JobStatus.COMPLETED
        assert final.completion_reason == "max_cycles_reached"
        assert final.completed_at is not None
        assert final.current_cycle == 1
        assert not manager.is_running(final.job_id)

        (cycle,) = store.cycles.rows.values()
        assert (cycle.tasks_discovered, cycle.tasks_completed, cycle.tasks_failed) == (2, 2, 0)
        assert cycle.summary == "All done"
        assert [t.status for t in store.tasks.rows.values()] == [TaskStatus.COMPLETED] * 2

        events = manager.broadcaster
        completed = events.of_type("job_completed")[0].data
        assert completed == {
            "cycles": 1,
            "total_tasks": 2,
            "summary": "Job completed: max_cycles_reached",
        }
        assert events.types()[-1] == "job_ended"
        assert not events.is_active(final.job_id)

    def test_cycle_numbers_are_gapless(self):
        async def run():
            manager = _manager(ScriptedDiscoverer(["step"], repeat=True))
            job = await manager.create_job("owner-1", dict(CONFIG, max_cycles=3))
            await manager.start_job(job.job_id)
            final = await _run_to_end(manager, job.job_id)
            detail = await manager.get_job_with_cycles(job.job_id)
            return final, detail

        final, detail = asyncio.run(run())
        assert final.current_cycle == 3
        assert [c.cycle_number for c in detail.cycles] == [1, 2, 3]
        assert all(c.phase == CyclePhase.COMPLETED for c in detail.cycles)

    def test_zero_discovery_completes_job(self):
        async def run():
            manager = _manager(ScriptedDiscoverer(["only once"]))
            job = await manager.create_job("owner-1", CONFIG)
            await manager.start_job(job.job_id)
            return await _run_to_end(manager, job.job_id)

        final = asyncio.run(run())
        assert final.status == JobStatus.COMPLETED
        assert final.completion_reason == "all_tasks_complete"
        assert final.current_cycle == 2

    def test_failed_tasks_do_not_fail_the_job(self):
        async def run():
            manager = _manager(
                ScriptedDiscoverer(["good", "bad"]),
                RecordingExecutor(fail_descriptions={"bad"}),
            )
            job = await manager.create_job("owner-1", dict(CONFIG, max_cycles=1))
            await manager.start_job(job.job_id)
            final = await _run_to_end(manager, job.job_id)
            detail = await manager.get_cycle_with_tasks(job.job_id, 1)
            return final, detail

        final, detail = asyncio.run(run())
        assert final.status == JobStatus.COMPLETED
        assert [t.status for t in detail.tasks] == [TaskStatus.COMPLETED, TaskStatus.FAILED]
        assert detail.cycle.tasks_failed == 1

    def test_executor_raising_cancelled_fails_only_its_task(self):
        async def run():
            manager = _manager(
                ScriptedDiscoverer(["a", "b"]),
                RecordingExecutor(cancel_descriptions={"b"}),
            )
            job = await manager.create_job("owner-1", dict(CONFIG, max_cycles=1))
            await manager.start_job(job.job_id)
            final = await _run_to_end(manager, job.job_id)
            detail = await manager.get_cycle_with_tasks(job.job_id, 1)
            return manager, final, detail

        manager, final, detail = asyncio.run(run())
        assert final.status == JobStatus.COMPLETED
        assert [t.status for t in detail.tasks] == [TaskStatus.COMPLETED, TaskStatus.FAILED]
        assert detail.tasks[1].error_message == "Task cancelled by executor"
        assert not manager.is_running(final.job_id)

    def test_runner_cancelled_from_outside_marks_job_error(self):
        async def run():
            gate = asyncio.Event()
            executor = RecordingExecutor(gate=gate)
            manager = _manager(ScriptedDiscoverer(["a"], repeat=True), executor)
            job = await manager.create_job("owner-1", CONFIG)
            await manager.start_job(job.job_id)
            await asyncio.wait_for(executor.started.wait(), timeout=5)

            runner = manager.registry.get(job.job_id).task
            runner.cancel()
            await asyncio.wait({runner}, timeout=5)
            return manager, runner, await manager.get_job(job.job_id)

        manager, runner, stored = asyncio.run(run())
        assert runner.cancelled()
        assert stored.status == JobStatus.ERROR
        assert stored.last_error == "Job runner cancelled"
        assert not manager.is_running(stored.job_id)
        assert manager.broadcaster.of_type("job_ended")[-1].data["reason"] == "error"

    def test_discovery_failure_marks_job_error(self):
        async def run():
            manager = _manager(ScriptedDiscoverer(error=RuntimeError("model unavailable")))
            job = await manager.create_job("owner-1", CONFIG)
            await manager.start_job(job.job_id)
            return manager, await _run_to_end(manager, job.job_id)

        manager, final = asyncio.run(run())
        assert final.status == JobStatus.ERROR
        assert final.last_error == "model unavailable"
        assert final.error_count == 1
        assert final.current_cycle == 0
        assert manager.broadcaster.of_type("job_error")[0].data["error"] == "model unavailable"
        assert manager.broadcaster.of_type("job_ended")[-1].data["reason"] == "error"

    def test_time_limit_counts_from_first_start(self):
        async def run():
            manager = _manager(ScriptedDiscoverer(["x"], repeat=True))
            job = await manager.create_job("owner-1", dict(CONFIG, time_limit_minutes=5))
            # Started long ago, then paused
            await manager.store.jobs.update(
                job.job_id,
                status=JobStatus.PAUSED,
                started_at=utc_now() - timedelta(minutes=10),
            )
            await manager.start_job(job.job_id)
            return await _run_to_end(manager, job.job_id)

        final = asyncio.run(run())
        assert final.status == JobStatus.COMPLETED
        assert final.completion_reason == "time_limit_reached"
        assert final.current_cycle == 0


# ============================================================================
# PAUSE / RESUME / CANCEL
# ============================================================================

class TestPauseResume:

    def test_pause_mid_execution_then_resume(self):
        async def run():
            gate = asyncio.Event()
            executor = RecordingExecutor(gate=gate)
            discoverer = ScriptedDiscoverer(["first", "second"], ["third"])
            manager = _manager(discoverer, executor)
            job = await manager.create_job("owner-1", dict(CONFIG, max_parallel_tasks=1))
            await manager.start_job(job.job_id)

            await asyncio.wait_for(executor.started.wait(), timeout=5)
            paused = await manager.pause_job(job.job_id)
            gate.set()
            stopped = await _run_to_end(manager, job.job_id)
            stalled = await manager.get_cycle_with_tasks(job.job_id, 1)

            resumed = await manager.resume_job(job.job_id)
            final = await _run_to_end(manager, job.job_id)
            detail = await manager.get_job_with_cycles(job.job_id)
            return manager, paused, stopped, stalled, resumed, final, detail

        manager, paused, stopped, stalled, resumed, final, detail = asyncio.run(run())

        assert paused.status == JobStatus.PAUSED
        assert stopped.status == JobStatus.PAUSED
        assert stopped.current_cycle == 1

        # The in-flight batch finished; the next batch never started
        assert stalled.cycle.phase == CyclePhase.EXECUTION
        assert [t.status for t in stalled.tasks] == [TaskStatus.COMPLETED, TaskStatus.PENDING]

        assert resumed.status == JobStatus.RUNNING
        assert resumed.started_at == stopped.started_at
        assert [c.cycle_number for c in detail.cycles] == [1, 2, 3]
        assert final.status == JobStatus.COMPLETED

        events = manager.broadcaster
        assert events.of_type("job_paused")[0].data["cycle_number"] == 1
        assert events.of_type("job_resumed")[0].data["cycle_number"] == 2

    def test_pause_without_runner(self):
        async def run():
            manager = _manager()
            job = await manager.create_job("owner-1", CONFIG)
            await manager.pause_job(job.job_id)

        with pytest.raises(JobNotRunningError):
            asyncio.run(run())

    def test_resume_requires_paused(self):
        async def run():
            manager = _manager()
            job = await manager.create_job("owner-1", CONFIG)
            await manager.resume_job(job.job_id)

        with pytest.raises(InvalidJobStateError):
            asyncio.run(run())


class TestCancel:

    def test_cancel_waits_for_runner(self):
        async def run():
            gate = asyncio.Event()
            executor = RecordingExecutor(gate=gate)
            manager = _manager(ScriptedDiscoverer(["a", "b"], repeat=True), executor)
            job = await manager.create_job("owner-1", CONFIG)
            await manager.start_job(job.job_id)
            await asyncio.wait_for(executor.started.wait(), timeout=5)

            cancelling = asyncio.create_task(manager.cancel_job(job.job_id))
            await asyncio.sleep(0)
            assert not cancelling.done()
            gate.set()
            cancelled = await asyncio.wait_for(cancelling, timeout=5)
            return manager, cancelled, await manager.get_job(job.job_id)

        manager, cancelled, stored = asyncio.run(run())
        assert cancelled.status == JobStatus.CANCELLED
        assert stored.status == JobStatus.CANCELLED
        assert stored.completed_at is not None
        assert not manager.is_running(stored.job_id)
        assert manager.broadcaster.of_type("job_ended")[-1].data["reason"] == "cancelled"

    def test_cancel_without_runner(self):
        async def run():
            manager = _manager()
            job = await manager.create_job("owner-1", CONFIG)
            return await manager.cancel_job(job.job_id)

        assert asyncio.run(run()).status == JobStatus.CANCELLED

    def test_cancel_missing_job(self):
        with pytest.raises(JobNotFoundError):
            asyncio.run(_manager().cancel_job("nope"))


class TestStartConflicts:

    def test_second_start_rejected(self):
        async def run():
            gate = asyncio.Event()
            manager = _manager(ScriptedDiscoverer(["a"]), RecordingExecutor(gate=gate))
            job = await manager.create_job("owner-1", CONFIG)
            await manager.start_job(job.job_id)
            try:
                with pytest.raises(JobAlreadyRunningError):
                    await manager.start_job(job.job_id)
            finally:
                gate.set()
                await manager.cancel_job(job.job_id)

        asyncio.run(run())

    def test_start_missing_job_releases_registry(self):
        async def run():
            manager = _manager()
            with pytest.raises(JobNotFoundError):
                await manager.start_job("missing")
            return manager

        manager = asyncio.run(run())
        assert len(manager.registry) == 0

    def test_start_completed_job_rejected(self):
        async def run():
            manager = _manager()
            job = await manager.create_job("owner-1", CONFIG)
            await manager.store.jobs.update(job.job_id, status=JobStatus.COMPLETED)
            with pytest.raises(InvalidJobStateError):
                await manager.start_job(job.job_id)
            return manager

        manager = asyncio.run(run())
        assert len(manager.registry) == 0


# ============================================================================
# READS, MUTATORS, SHUTDOWN
# ============================================================================

class TestReadsAndMutators:

    def test_list_jobs_newest_first(self):
        async def run():
            manager = _manager()
            first = await manager.create_job("owner-1", CONFIG)
            await asyncio.sleep(0.01)
            second = await manager.create_job("owner-1", CONFIG)
            await manager.create_job("owner-2", CONFIG)
            return first, second, await manager.list_jobs("owner-1", limit=10)

        first, second, jobs = asyncio.run(run())
        assert [j.job_id for j in jobs] == [second.job_id, first.job_id]

    def test_update_documents(self):
        async def run():
            manager = _manager()
            job = await manager.create_job("owner-1", CONFIG)
            await manager.update_request_document(job.job_id, "- [ ] New goal")
            return await manager.update_task_list(job.job_id, "- [x] New goal")

        job = asyncio.run(run())
        assert job.request_document == "- [ ] New goal"
        assert job.task_list == "- [x] New goal"

    def test_update_missing_job(self):
        with pytest.raises(JobNotFoundError):
            asyncio.run(_manager().update_task_list("nope", "x"))

    def test_missing_cycle(self):
        async def run():
            manager = _manager()
            job = await manager.create_job("owner-1", CONFIG)
            await manager.get_cycle_with_tasks(job.job_id, 4)

        with pytest.raises(CycleNotFoundError):
            asyncio.run(run())


class TestShutdown:

    def test_shutdown_pauses_running_jobs(self):
        async def run():
            gate = asyncio.Event()
            executor = RecordingExecutor(gate=gate)
            manager = _manager(ScriptedDiscoverer(["a"], repeat=True), executor)
            job = await manager.create_job("owner-1", CONFIG)
            await manager.start_job(job.job_id)
            await asyncio.wait_for(executor.started.wait(), timeout=5)

            shutting_down = asyncio.create_task(manager.shutdown(timeout=5))
            await asyncio.sleep(0)
            gate.set()
            await shutting_down
            return manager, await manager.get_job(job.job_id)

        manager, job = asyncio.run(run())
        assert job.status == JobStatus.PAUSED
        assert len(manager.registry) == 0

    def test_shutdown_cancels_stuck_runners(self):
        async def run():
            executor = RecordingExecutor(gate=asyncio.Event())
            manager = _manager(ScriptedDiscoverer(["a"]), executor)
            job = await manager.create_job("owner-1", CONFIG)
            await manager.start_job(job.job_id)
            await asyncio.wait_for(executor.started.wait(), timeout=5)
            await manager.shutdown(timeout=0.05)
            return manager, await manager.get_job(job.job_id)

        manager, job = asyncio.run(run())
        assert job.status == JobStatus.PAUSED
        assert len(manager.registry) == 0
