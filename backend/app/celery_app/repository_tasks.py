"""
GitHub repository sync Celery tasks.

Design:
1. The API creates the sync job row, then queues run_repo_sync_job with its id
2. The worker runs the same work unit as the in-process dispatcher
3. The job row is the source of truth; the task result is informational only
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict

from celery.exceptions import Reject

from .async_utils import run_async
from .celery import app
from .task_lock import get_task_lock
from app.core.config import DISPATCH_MODE_LOCAL
from app.services.sync.models import SyncJobStatus
from app.services.sync.orchestrator import SyncOrchestrator, build_sync_orchestrator

logger = logging.getLogger(__name__)

# Hard timeout for one sync; the lock outlives it so an expired lock never
# lets a second run start while the first is still alive
SYNC_TIME_LIMIT_SECONDS = 600
SYNC_SOFT_TIME_LIMIT_SECONDS = 540
SYNC_LOCK_TTL_SECONDS = 660


@lru_cache(maxsize=1)
def get_worker_orchestrator() -> SyncOrchestrator:
    """One orchestrator per worker process; only its run_job is used here."""
    return build_sync_orchestrator(dispatch_mode=DISPATCH_MODE_LOCAL)


def _duration_ms(start_time: datetime) -> int:
    return int((datetime.now(timezone.utc) - start_time).total_seconds() * 1000)


@app.task(
    bind=True,
    name="run_repo_sync_job",
    acks_late=True,
    time_limit=SYNC_TIME_LIMIT_SECONDS,
    soft_time_limit=SYNC_SOFT_TIME_LIMIT_SECONDS,
)
def run_repo_sync_job(self, job_id: str, user_id: str) -> Dict[str, Any]:
    """
    Run one repository sync job.

    No Celery retries: a failure is final for the job and is recorded on
    the job row. The user starts a new job to try again.

    Args:
        job_id: RepoSyncJob id created by the API
        user_id: Owner of the job
    """
    task_id = self.request.id
    task_lock = get_task_lock()
    lock_key = f"repo_sync:{user_id}"
    orchestrator = get_worker_orchestrator()

    logger.info(
        f"[REPO_SYNC] Worker picked up job {job_id} for user {user_id}",
        extra={'task_id': task_id, 'user_id': user_id, 'job_id': job_id}
    )

    job = orchestrator.get_sync_job(job_id)
    if job.is_terminal:
        # Redelivered after the job already finished
        logger.info(f"[REPO_SYNC] Job {job_id} already {job.status.value}, skipping")
        return {"success": job.status == SyncJobStatus.COMPLETED, "job_id": job_id, "skipped": True}

    with task_lock.lock(lock_key, SYNC_LOCK_TTL_SECONDS, task_id) as acquired:
        if not acquired:
            remaining = task_lock.get_ttl(lock_key)
            logger.info(f"[REPO_SYNC] User {user_id} sync already running, lock expires in {remaining}s")
            if job.status == SyncJobStatus.PENDING:
                # Never started and nothing else will start it
                orchestrator.job_store.mark_failed(job_id, "Another sync for this user is already running")
            raise Reject(f"Repo sync for user {user_id} is locked", requeue=False)

        start_time = datetime.now(timezone.utc)
        run_async(orchestrator.run_job(job_id, user_id))
        final = orchestrator.get_sync_job(job_id)
        duration_ms = _duration_ms(start_time)

    logger.info(
        f"[REPO_SYNC] Job {job_id} finished as {final.status.value} in {duration_ms}ms",
        extra={
            'task_id': task_id,
            'user_id': user_id,
            'job_id': job_id,
            'duration_ms': duration_ms,
            'error': final.error or '',
        }
    )
    return {
        "success": final.status == SyncJobStatus.COMPLETED,
        "job_id": job_id,
        "user_id": user_id,
        "status": final.status.value,
        "error": final.error,
        "duration_ms": duration_ms,
    }
