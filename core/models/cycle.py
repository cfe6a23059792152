# ============================================================================
# CLAUDE CONTEXT - CYCLE MODEL
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core model - One pass of the four-phase pipeline
# PURPOSE: Audit record of a discovery/execution/convergence/update pass
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: Cycle
# DEPENDENCIES: pydantic
# ============================================================================
"""
Cycle Model

One row per (job, cycle_number). The phase column records the last phase
reached and is an audit marker only: a paused cycle is never re-entered.
"""

from datetime import datetime
from typing import Dict, List, Optional, ClassVar
from pydantic import Field

from core.contracts import CycleData, CyclePhase, utc_now


class Cycle(CycleData):
    """
    One iteration of the pipeline for a job.

    Maps to: orchestrator.orchestrator_cycles table
    """

    __sql_table__: ClassVar[str] = "orchestrator_cycles"
    __sql_schema__: ClassVar[str] = "orchestrator"
    __sql_primary_key__: ClassVar[List[str]] = ["cycle_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "job_id": "orchestrator.orchestrator_jobs(job_id)"
    }
    __sql_indexes__: ClassVar[List[tuple]] = []
    __sql_unique__: ClassVar[List[tuple]] = [
        ("uq_orch_cycles_job_number", ["job_id", "cycle_number"]),
    ]

    phase: CyclePhase = Field(default=CyclePhase.DISCOVERY)

    # Counters
    tasks_discovered: int = Field(default=0, ge=0)
    tasks_launched: int = Field(default=0, ge=0)
    tasks_completed: int = Field(default=0, ge=0)
    tasks_failed: int = Field(default=0, ge=0)

    summary: Optional[str] = Field(default=None, description="Produced by the update phase")

    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.phase == CyclePhase.COMPLETED


__all__ = ["Cycle"]
