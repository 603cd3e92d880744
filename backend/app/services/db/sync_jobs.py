"""
Sync job store backed by the `repo_sync_jobs` Supabase table.

Every write is one conditional UPDATE/INSERT statement, so PostgREST applies
it atomically:
- progress writes carry `status IN (pending, running) AND progress <= new`
- terminal writes carry `status IN (pending, running)`
- create relies on a partial unique index

    CREATE UNIQUE INDEX repo_sync_jobs_one_unfinished_per_user
        ON repo_sync_jobs (user_id) WHERE status IN ('pending', 'running');

  so a second unfinished job for the same user fails with 23505.
"""

import logging
from typing import Optional

from supabase import Client

from app.exceptions import JobNotFoundError, PersistenceError, SyncInProgressError
from app.services.sync.job_store import JobStore
from app.services.sync.models import (
    UNFINISHED_STATUSES,
    RepoSyncJob,
    SyncJobStatus,
    utc_now,
)
from .base import INVALID_TEXT_REPRESENTATION, has_error_code, is_duplicate_error

logger = logging.getLogger(__name__)

_UNFINISHED = [status.value for status in UNFINISHED_STATUSES]

# How many times create() retries when the conflicting job finished in between
CREATE_ATTEMPTS = 2


class SupabaseJobStore(JobStore):
    """Service-role job store (jobs are read and written across users)."""

    table_name = "repo_sync_jobs"

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _table(self):
        return self.supabase.table(self.table_name)

    def create(self, user_id: str) -> RepoSyncJob:
        for _ in range(CREATE_ATTEMPTS):
            job = RepoSyncJob(user_id=user_id)
            row = {
                "id": job.id,
                "user_id": job.user_id,
                "status": job.status.value,
                "progress": job.progress,
                "message": job.message,
                "created_at": job.created_at.isoformat(),
            }

            try:
                response = self._table().insert(row).execute()
            except Exception as e:
                if not is_duplicate_error(e):
                    raise
                existing = self.get_most_recent_unfinished(user_id)
                if existing is not None:
                    raise SyncInProgressError(existing.id) from e
                logger.info(
                    "Unfinished sync job finished during create, retrying",
                    extra={"user_id": user_id},
                )
                continue

            if not response.data:
                raise PersistenceError("create sync job")
            return RepoSyncJob.from_row(response.data[0])

        # Every attempt lost to a job that finished right after; report whoever holds the slot now
        existing = self.get_most_recent_unfinished(user_id)
        if existing is not None:
            raise SyncInProgressError(existing.id)
        raise PersistenceError("create sync job", "unfinished job for user kept changing")

    def get(self, job_id: str) -> RepoSyncJob:
        try:
            response = self._table() \
                .select("*") \
                .eq("id", job_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            if has_error_code(e, INVALID_TEXT_REPRESENTATION):
                raise JobNotFoundError(job_id) from e
            raise

        if not response.data:
            raise JobNotFoundError(job_id)
        return RepoSyncJob.from_row(response.data[0])

    def get_most_recent_unfinished(self, user_id: str) -> Optional[RepoSyncJob]:
        response = self._table() \
            .select("*") \
            .eq("user_id", user_id) \
            .in_("status", _UNFINISHED) \
            .order("created_at", desc=True) \
            .limit(1) \
            .execute()

        if response.data:
            return RepoSyncJob.from_row(response.data[0])
        return None

    def update_progress(self, job_id: str, message: str, progress: float) -> bool:
        response = self._table() \
            .update({
                "status": SyncJobStatus.RUNNING.value,
                "message": message,
                "progress": progress,
            }) \
            .eq("id", job_id) \
            .in_("status", _UNFINISHED) \
            .lte("progress", progress) \
            .execute()

        return self._applied(job_id, response)

    def mark_failed(self, job_id: str, error_message: str) -> bool:
        return self._finish(job_id, {
            "status": SyncJobStatus.FAILED.value,
            "message": error_message,
            "error": error_message,
        })

    def mark_completed(self, job_id: str, message: str) -> bool:
        return self._finish(job_id, {
            "status": SyncJobStatus.COMPLETED.value,
            "message": message,
            "progress": 1.0,
        })

    def _finish(self, job_id: str, updates: dict) -> bool:
        response = self._table() \
            .update({**updates, "completed_at": utc_now().isoformat()}) \
            .eq("id", job_id) \
            .in_("status", _UNFINISHED) \
            .execute()

        applied = self._applied(job_id, response)
        if not applied:
            logger.warning(
                f"Ignoring {updates['status']} for finished job {job_id}",
                extra={"job_id": job_id},
            )
        return applied

    def _applied(self, job_id: str, response) -> bool:
        """A conditional write matched nothing: tell unknown ids from guarded ones."""
        if response.data:
            return True
        self.get(job_id)
        return False
