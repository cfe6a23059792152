# ============================================================================
# TERMINATION POLICY TESTS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Tests - Stop conditions
# PURPOSE: Verify cycle cap and time limit boundaries
# CREATED: 17 OCT 2026
# ============================================================================
"""
Termination Policy Tests

Run with:
    pytest tests/test_termination.py -v
"""

from datetime import timedelta

from core.contracts import TerminationReason, utc_now
from orchestrator.termination import CONTINUE, TerminationPolicy, evaluate_termination
from fakes import make_job


class TestMaxCycles:

    def test_at_cap_terminates(self):
        decision = evaluate_termination(make_job(max_cycles=3, current_cycle=3))
        assert decision.terminate
        assert decision.reason == TerminationReason.MAX_CYCLES_REACHED

    def test_below_cap_continues(self):
        assert evaluate_termination(make_job(max_cycles=3, current_cycle=2)) == CONTINUE

    def test_no_cap_never_terminates(self):
        assert not evaluate_termination(make_job(current_cycle=500)).terminate


class TestTimeLimit:

    def test_elapsed_past_limit_terminates(self):
        now = utc_now()
        job = make_job(time_limit_minutes=10, started_at=now - timedelta(minutes=11))
        decision = evaluate_termination(job, now)
        assert decision.terminate
        assert decision.reason == TerminationReason.TIME_LIMIT_REACHED

    def test_elapsed_under_limit_continues(self):
        now = utc_now()
        job = make_job(time_limit_minutes=10, started_at=now - timedelta(minutes=9))
        assert evaluate_termination(job, now) == CONTINUE

    def test_exact_limit_terminates(self):
        now = utc_now()
        job = make_job(time_limit_minutes=10, started_at=now - timedelta(minutes=10))
        assert evaluate_termination(job, now).terminate

    def test_never_started_continues(self):
        assert evaluate_termination(make_job(time_limit_minutes=1, started_at=None)) == CONTINUE

    def test_cycle_cap_checked_first(self):
        now = utc_now()
        job = make_job(
            max_cycles=1,
            current_cycle=1,
            time_limit_minutes=1,
            started_at=now - timedelta(hours=1),
        )
        assert evaluate_termination(job, now).reason == TerminationReason.MAX_CYCLES_REACHED


class TestPolicyClock:

    def test_uses_injected_clock(self):
        started = utc_now()
        policy = TerminationPolicy(clock=lambda: started + timedelta(minutes=30))
        job = make_job(time_limit_minutes=15, started_at=started)
        assert policy.evaluate(job).reason == TerminationReason.TIME_LIMIT_REACHED
