# ============================================================================
# TASK DISCOVERY
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Service - Discoverer contract and default implementation
# PURPOSE: Turn job context into the next set of candidate tasks
# CREATED: 17 OCT 2026
# ============================================================================
"""
Task Discovery

The engine only depends on TaskDiscoverer.discover(). An LLM-backed
discoverer is a drop-in replacement for TaskListDiscoverer, which reads
the open items of the job's markdown plan.

A discoverer failure is fatal for the cycle; returning an empty result is
the normal way to say "nothing left to do".
"""

import logging
from abc import ABC, abstractmethod

from core.models import DiscoveredTask, DiscoveryContext, DiscoveryResult
from .checklist import unchecked_items

logger = logging.getLogger(__name__)


class TaskDiscoverer(ABC):
    """Given job context, return candidate tasks."""

    @abstractmethod
    async def discover(self, context: DiscoveryContext) -> DiscoveryResult:
        ...


class TaskListDiscoverer(TaskDiscoverer):
    """
    Discover the unchecked checklist items of the job's plan.

    The task list is authoritative once it exists; the request document is
    only read while the job has no task list yet.
    """

    def __init__(self, max_tasks: int = 10):
        if max_tasks < 1:
            raise ValueError("max_tasks must be >= 1")
        self.max_tasks = max_tasks

    async def discover(self, context: DiscoveryContext) -> DiscoveryResult:
        has_plan = bool(context.task_list and context.task_list.strip())
        source = context.task_list if has_plan else context.request_document
        items = unchecked_items(source)

        tasks = [
            DiscoveredTask(
                description=item.description,
                context="\n".join(item.context_lines),
                priority=item.priority,
                parallel=item.parallel,
            )
            for item in items
            if item.description
        ][: self.max_tasks]

        logger.info(
            f"Discovered {len(tasks)} of {len(items)} open items "
            f"from {'task list' if has_plan else 'request document'}"
        )
        return DiscoveryResult(
            tasks=tasks,
            reasoning=f"{len(items)} unchecked items in the "
                      f"{'task list' if has_plan else 'request document'}",
        )


__all__ = ["TaskDiscoverer", "TaskListDiscoverer"]
