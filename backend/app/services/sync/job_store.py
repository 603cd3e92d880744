"""
Sync job store interface and in-process implementation.

Every mutation is a single point-write keyed by job id. Writes that would
move a job backwards (lower progress, leave a terminal state) are rejected
by the store itself, so callers need no extra locking.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from app.exceptions import JobNotFoundError, SyncInProgressError
from .models import RepoSyncJob, SyncJobStatus, utc_now

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Durable record of repository sync jobs."""

    @abstractmethod
    def create(self, user_id: str) -> RepoSyncJob:
        """
        Insert a PENDING job for the user.

        Atomic check-then-create: raises SyncInProgressError (carrying the
        existing job id) if the user already has a pending or running job.
        """
        ...

    @abstractmethod
    def get(self, job_id: str) -> RepoSyncJob:
        """Get a job by id. Raises JobNotFoundError for unknown ids."""
        ...

    @abstractmethod
    def get_most_recent_unfinished(self, user_id: str) -> Optional[RepoSyncJob]:
        """Get the newest pending/running job for the user, if any."""
        ...

    @abstractmethod
    def update_progress(self, job_id: str, message: str, progress: float) -> bool:
        """
        Record a checkpoint and mark the job RUNNING.

        Applied only if the job is unfinished and progress does not decrease.
        Returns True if the write was applied.
        """
        ...

    @abstractmethod
    def mark_failed(self, job_id: str, error_message: str) -> bool:
        """Terminal transition to FAILED. Returns False if already terminal."""
        ...

    @abstractmethod
    def mark_completed(self, job_id: str, message: str) -> bool:
        """Terminal transition to COMPLETED with progress 1.0. Returns False if already terminal."""
        ...


class InMemoryJobStore(JobStore):
    """
    Process-local job store.

    A single lock serializes all reads and writes, which makes create()
    atomic and keeps updates to one job from interleaving. Records handed
    out are copies, so callers never observe a write in progress.
    """

    def __init__(self):
        self._jobs: Dict[str, RepoSyncJob] = {}
        self._lock = threading.Lock()

    def create(self, user_id: str) -> RepoSyncJob:
        with self._lock:
            existing = self._most_recent_unfinished_locked(user_id)
            if existing is not None:
                raise SyncInProgressError(existing.id)

            job = RepoSyncJob(user_id=user_id)
            self._jobs[job.id] = job
            logger.debug(f"Created sync job {job.id}", extra={"user_id": user_id, "job_id": job.id})
            return job.model_copy()

    def get(self, job_id: str) -> RepoSyncJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return job.model_copy()

    def get_most_recent_unfinished(self, user_id: str) -> Optional[RepoSyncJob]:
        with self._lock:
            job = self._most_recent_unfinished_locked(user_id)
            return job.model_copy() if job else None

    def update_progress(self, job_id: str, message: str, progress: float) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.is_terminal or progress < job.progress:
                return False

            self._jobs[job_id] = job.model_copy(update={
                "status": SyncJobStatus.RUNNING,
                "message": message,
                "progress": progress,
            })
            return True

    def mark_failed(self, job_id: str, error_message: str) -> bool:
        return self._finish(job_id, {
            "status": SyncJobStatus.FAILED,
            "message": error_message,
            "error": error_message,
        })

    def mark_completed(self, job_id: str, message: str) -> bool:
        return self._finish(job_id, {
            "status": SyncJobStatus.COMPLETED,
            "message": message,
            "progress": 1.0,
        })

    def _finish(self, job_id: str, updates: dict) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.is_terminal:
                logger.warning(
                    f"Ignoring {updates['status'].value} for finished job {job_id} ({job.status.value})",
                    extra={"job_id": job_id},
                )
                return False

            self._jobs[job_id] = job.model_copy(update={**updates, "completed_at": utc_now()})
            return True

    def _most_recent_unfinished_locked(self, user_id: str) -> Optional[RepoSyncJob]:
        unfinished = [
            job for job in self._jobs.values()
            if job.user_id == user_id and not job.is_terminal
        ]
        if not unfinished:
            return None
        return max(unfinished, key=lambda job: job.created_at)
