"""
Repository sync job endpoints.

Starting a sync returns a job id right away; clients poll the job until
its status is completed or failed.
"""

import logging
from fastapi import APIRouter, Depends

from app.dependencies import get_current_user_id, get_sync_orchestrator
from app.exceptions import JobNotFoundError
from app.schemas.sync_jobs import SyncJobResponse, SyncStartResponse
from app.services.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


@router.post("/repositories/sync", response_model=SyncStartResponse, status_code=202)
async def start_repository_sync(
    user_id: str = Depends(get_current_user_id),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """
    Start syncing starred repositories from GitHub.

    Errors:
    - 409 SYNC_IN_PROGRESS: the user already has an unfinished job; the
      body carries its `job_id`
    """
    job_id = await orchestrator.start_sync(user_id)
    return SyncStartResponse(job_id=job_id)


@router.get("/sync-jobs/{job_id}", response_model=SyncJobResponse)
async def get_sync_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """Get the current state of a sync job."""
    job = orchestrator.get_sync_job(job_id)
    # Other users' jobs are reported as missing
    if job.user_id != user_id:
        raise JobNotFoundError(job_id)
    return SyncJobResponse.from_job(job)
