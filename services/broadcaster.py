# ============================================================================
# EVENT BROADCASTER
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - In-process progress fan-out
# PURPOSE: Deliver orchestrator events to live subscribers (SSE streams)
# CREATED: 17 OCT 2026
# ============================================================================
"""
Event Broadcaster

Fan-out notification sink for job progress. Every call is synchronous and
non-blocking: subscribers are plain callbacks (typically queue.put_nowait
on an asyncio.Queue owned by a stream).

SafeEventSink wraps any broadcaster so that nothing it raises can reach
the orchestration pipeline. Events are fire-and-forget: failures are
logged but don't propagate.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Set

from core.models import EventType, OrchestratorEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[OrchestratorEvent], None]


class EventBroadcaster:
    """Per-job subscriber registry with typed broadcast helpers."""

    def __init__(self):
        self._subscribers: Dict[str, Dict[str, EventCallback]] = {}
        self._active_jobs: Set[str] = set()

    # =========================================================================
    # SESSIONS & SUBSCRIPTIONS
    # =========================================================================

    def start_session(self, job_id: str) -> None:
        """Mark a job as actively producing events."""
        self._active_jobs.add(job_id)

    def end_session(self, job_id: str, reason: str) -> None:
        """Emit job_ended and mark the job inactive. Subscribers stay attached."""
        self.broadcast(OrchestratorEvent(
            type=EventType.JOB_ENDED, job_id=job_id, data={"reason": reason},
        ))
        self._active_jobs.discard(job_id)

    def is_active(self, job_id: str) -> bool:
        return job_id in self._active_jobs

    def subscribe(self, job_id: str, callback: EventCallback) -> str:
        """
        Register a callback for one job's events.

        Returns:
            Subscription id for unsubscribe()
        """
        subscription_id = uuid.uuid4().hex
        self._subscribers.setdefault(job_id, {})[subscription_id] = callback
        logger.debug(f"Subscriber {subscription_id[:8]} attached to job {job_id}")
        return subscription_id

    def unsubscribe(self, job_id: str, subscription_id: str) -> None:
        subscribers = self._subscribers.get(job_id)
        if not subscribers:
            return
        subscribers.pop(subscription_id, None)
        if not subscribers:
            del self._subscribers[job_id]

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, {}))

    def broadcast(self, event: OrchestratorEvent) -> None:
        """Deliver to every subscriber of the event's job; a failing one is dropped."""
        for subscription_id, callback in list(self._subscribers.get(event.job_id, {}).items()):
            try:
                callback(event)
            except Exception as e:
                logger.warning(
                    f"Subscriber {subscription_id[:8]} for job {event.job_id} "
                    f"failed on {event.type.value}: {e}; unsubscribing"
                )
                self.unsubscribe(event.job_id, subscription_id)

    def _emit(self, event_type: EventType, job_id: str, **data: Any) -> None:
        self.broadcast(OrchestratorEvent(type=event_type, job_id=job_id, data=data))

    # =========================================================================
    # JOB EVENTS
    # =========================================================================

    def broadcast_job_started(self, job_id: str) -> None:
        self._emit(EventType.JOB_STARTED, job_id)

    def broadcast_job_paused(self, job_id: str, cycle_number: int) -> None:
        self._emit(EventType.JOB_PAUSED, job_id, cycle_number=cycle_number)

    def broadcast_job_resumed(self, job_id: str, cycle_number: int) -> None:
        self._emit(EventType.JOB_RESUMED, job_id, cycle_number=cycle_number)

    def broadcast_job_completed(self, job_id: str, cycles: int, total_tasks: int, summary: str) -> None:
        self._emit(
            EventType.JOB_COMPLETED, job_id,
            cycles=cycles, total_tasks=total_tasks, summary=summary,
        )

    def broadcast_job_error(self, job_id: str, error: str) -> None:
        self._emit(EventType.JOB_ERROR, job_id, error=error)

    # =========================================================================
    # CYCLE EVENTS
    # =========================================================================

    def broadcast_cycle_started(self, job_id: str, cycle_number: int) -> None:
        self._emit(EventType.CYCLE_STARTED, job_id, cycle_number=cycle_number)

    def broadcast_cycle_phase(self, job_id: str, cycle_number: int, phase: str) -> None:
        self._emit(EventType.CYCLE_PHASE, job_id, cycle_number=cycle_number, phase=phase)

    def broadcast_cycle_completed(
        self,
        job_id: str,
        cycle_number: int,
        tasks_completed: int,
        tasks_failed: int,
        summary: Optional[str],
    ) -> None:
        self._emit(
            EventType.CYCLE_COMPLETED, job_id,
            cycle_number=cycle_number,
            tasks_completed=tasks_completed,
            tasks_failed=tasks_failed,
            summary=summary,
        )

    # =========================================================================
    # TASK EVENTS
    # =========================================================================

    def broadcast_tasks_discovered(
        self, job_id: str, cycle_number: int, tasks: List[Dict[str, str]]
    ) -> None:
        self._emit(EventType.TASKS_DISCOVERED, job_id, cycle_number=cycle_number, tasks=tasks)

    def broadcast_task_started(self, job_id: str, cycle_number: int, task_id: str, description: str) -> None:
        self._emit(
            EventType.TASK_STARTED, job_id,
            cycle_number=cycle_number, task_id=task_id, description=description,
        )

    def broadcast_task_progress(self, job_id: str, cycle_number: int, task_id: str, message: str) -> None:
        self._emit(
            EventType.TASK_PROGRESS, job_id,
            cycle_number=cycle_number, task_id=task_id, message=message,
        )

    def broadcast_task_completed(
        self, job_id: str, cycle_number: int, task_id: str, result_summary: Optional[str]
    ) -> None:
        self._emit(
            EventType.TASK_COMPLETED, job_id,
            cycle_number=cycle_number, task_id=task_id, result_summary=result_summary,
        )

    def broadcast_task_failed(self, job_id: str, cycle_number: int, task_id: str, error: str) -> None:
        self._emit(
            EventType.TASK_FAILED, job_id,
            cycle_number=cycle_number, task_id=task_id, error=error,
        )


class SafeEventSink:
    """
    Swallow-and-log proxy around a broadcaster.

    Any public method of the wrapped object can be called through the sink;
    exceptions are logged at WARNING and the call returns None.
    """

    def __init__(self, target: Any):
        self._target = target

    @property
    def target(self) -> Any:
        return self._target

    def __getattr__(self, name: str) -> Callable[..., None]:
        if name.startswith("_"):
            raise AttributeError(name)

        def _safe_call(*args: Any, **kwargs: Any) -> None:
            try:
                getattr(self._target, name)(*args, **kwargs)
            except Exception as e:
                logger.warning(f"Event sink call {name} failed: {e}")

        return _safe_call


def as_safe_sink(events: Any) -> SafeEventSink:
    """Wrap unless already wrapped."""
    if isinstance(events, SafeEventSink):
        return events
    return SafeEventSink(events)


__all__ = ["EventBroadcaster", "SafeEventSink", "EventCallback", "as_safe_sink"]
