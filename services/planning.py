# ============================================================================
# PLAN SUMMARIZER / UPDATER
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Service - Planner contract and default implementation
# PURPOSE: Summarize a cycle and rewrite the job's task list
# CREATED: 17 OCT 2026
# ============================================================================
"""
Plan Summarizer / Updater

Called once per cycle by the update phase with the cycle's completed and
failed outcomes. A failure here is fatal for the cycle.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set

from core.models import CompletedTaskOutcome, FailedTaskOutcome
from .checklist import ChecklistItem, normalize, parse_checklist

logger = logging.getLogger(__name__)


class PlanUpdater(ABC):
    """Produce a cycle summary and a revised task list."""

    @abstractmethod
    async def summarize(
        self,
        completed: List[CompletedTaskOutcome],
        failed: List[FailedTaskOutcome],
    ) -> str:
        ...

    @abstractmethod
    async def update_task_list(
        self,
        old_task_list: Optional[str],
        completed: List[CompletedTaskOutcome],
        failed: List[FailedTaskOutcome],
        extra: Optional[Dict[str, Any]] = None,
    ) -> str:
        ...


class MarkdownPlanUpdater(PlanUpdater):
    """
    Deterministic planner over markdown checklists.

    Completed items are ticked, failed items stay open with a note, and
    outcomes that match nothing in the plan are appended.
    """

    async def summarize(
        self,
        completed: List[CompletedTaskOutcome],
        failed: List[FailedTaskOutcome],
    ) -> str:
        lines = [f"Cycle completed: {len(completed)} tasks completed, {len(failed)} failed."]

        if completed:
            lines.append("")
            lines.append("Completed:")
            for outcome in completed:
                detail = f": {outcome.result_summary}" if outcome.result_summary else ""
                lines.append(f"- {outcome.description}{detail}")
                if outcome.files_modified:
                    lines.append(f"  Files: {', '.join(outcome.files_modified)}")

        if failed:
            lines.append("")
            lines.append("Failed:")
            for outcome in failed:
                lines.append(f"- {outcome.description}: {outcome.error_message or 'unknown error'}")

        return "\n".join(lines)

    async def update_task_list(
        self,
        old_task_list: Optional[str],
        completed: List[CompletedTaskOutcome],
        failed: List[FailedTaskOutcome],
        extra: Optional[Dict[str, Any]] = None,
    ) -> str:
        extra = extra or {}
        base = old_task_list
        if not (base and base.strip()):
            # First cycle without a plan: seed it from the request checklist
            seeded: List[str] = []
            for item in parse_checklist(extra.get("request_document")):
                seeded.append(f"- [{'x' if item.checked else ' '}] {item.text}")
                seeded.extend(f"  {line}" for line in item.context_lines)
            base = "\n".join(seeded)

        lines = base.splitlines()
        items: Dict[str, List[ChecklistItem]] = {}
        for item in parse_checklist(base):
            items.setdefault(item.key, []).append(item)
        claimed: Set[int] = set()

        def claim(description: str) -> Optional[ChecklistItem]:
            # Duplicate descriptions are matched to open items in document order
            candidates = items.get(normalize(description))
            if not candidates:
                return None
            for candidate in candidates:
                if not candidate.checked and candidate.line_index not in claimed:
                    claimed.add(candidate.line_index)
                    return candidate
            return candidates[0]

        cycle_label = f"cycle {extra['cycle_number']}" if "cycle_number" in extra else "last cycle"

        notes: Dict[int, str] = {}
        unmatched_completed: List[CompletedTaskOutcome] = []
        unmatched_failed: List[FailedTaskOutcome] = []

        for outcome in completed:
            item = claim(outcome.description)
            if item is None:
                unmatched_completed.append(outcome)
                continue
            lines[item.line_index] = lines[item.line_index].replace("[ ]", "[x]", 1)

        for outcome in failed:
            item = claim(outcome.description)
            if item is None:
                unmatched_failed.append(outcome)
                continue
            indent = " " * (len(lines[item.line_index]) - len(lines[item.line_index].lstrip()) + 2)
            notes[item.line_index] = (
                f"{indent}Failed in {cycle_label}: {outcome.error_message or 'unknown error'}"
            )

        result: List[str] = []
        for index, line in enumerate(lines):
            result.append(line)
            if index in notes:
                result.append(notes[index])

        if unmatched_completed:
            result.extend(["", f"## Completed ({cycle_label})"])
            result.extend(f"- [x] {o.description}" for o in unmatched_completed)

        if unmatched_failed:
            result.extend(["", f"## Needs retry ({cycle_label})"])
            for o in unmatched_failed:
                result.append(f"- [ ] {o.description}")
                result.append(f"  Failed: {o.error_message or 'unknown error'}")

        logger.debug(
            f"Task list updated: {len(completed)} ticked, {len(failed)} noted, "
            f"{len(unmatched_completed) + len(unmatched_failed)} appended"
        )
        return "\n".join(result).strip("\n") + "\n"


__all__ = ["PlanUpdater", "MarkdownPlanUpdater"]
