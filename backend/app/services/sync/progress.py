"""
Progress reporting abstraction for sync operations.

Decouples sync logic from where progress ends up (job store, logs, tests).
"""

import logging
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    """Sync checkpoints, in the order a job passes them."""
    STARTED = "started"
    LOCAL_LOADED = "local_loaded"
    REMOTE_FETCHED = "remote_fetched"
    PERSISTED = "persisted"
    COMPLETED = "completed"

    @property
    def progress(self) -> float:
        return _CHECKPOINTS[self][0]

    @property
    def message(self) -> str:
        return _CHECKPOINTS[self][1]


_CHECKPOINTS = {
    SyncPhase.STARTED: (0.0, "Sync started"),
    SyncPhase.LOCAL_LOADED: (0.3, "Checked for pre syncd repos"),
    SyncPhase.REMOTE_FETCHED: (0.6, "Pulled current stargazing data from GitHub"),
    SyncPhase.PERSISTED: (0.9, "Updated syncd repos with new stargazing data"),
    SyncPhase.COMPLETED: (1.0, "Update completed!"),
}


@runtime_checkable
class ProgressReporter(Protocol):
    """
    Protocol for reporting sync progress.

    Implementations can target different sinks:
    - Job store (polled by clients)
    - Logging only
    """

    async def report_phase(self, phase: SyncPhase, **data: Any) -> Optional[bool]:
        """Report a phase transition with optional data. False means the sink refused it."""
        ...


class JobProgressReporter:
    """
    Progress reporter that writes checkpoints onto a sync job record.

    The first checkpoint moves the job from PENDING to RUNNING. The store
    ignores writes that would lower progress or touch a finished job.
    """

    def __init__(self, job_store, job_id: str):
        self.job_store = job_store
        self.job_id = job_id

    async def report_phase(self, phase: SyncPhase, **data: Any) -> bool:
        applied = self.job_store.update_progress(self.job_id, phase.message, phase.progress)
        logger.debug(
            f"[REPO_SYNC] Job {self.job_id} reached {phase.value} ({phase.progress:.1f}) {data or ''}",
            extra={"job_id": self.job_id},
        )
        if not applied:
            logger.warning(
                f"[REPO_SYNC] Progress update for job {self.job_id} to {phase.value} was not applied",
                extra={"job_id": self.job_id},
            )
        return applied
