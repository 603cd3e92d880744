"""
Pydantic schemas for repository sync jobs.
"""

from datetime import datetime
from pydantic import BaseModel

from app.services.sync.models import RepoSyncJob, SyncJobStatus


class SyncStartResponse(BaseModel):
    """Response model for starting a sync."""
    job_id: str


class SyncJobResponse(BaseModel):
    """
    Response model for polling a sync job.

    Clients must check `status`; a failed job may still report a high
    `progress`.
    """
    id: str
    status: SyncJobStatus
    progress: float
    message: str
    error: str | None = None
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_job(cls, job: RepoSyncJob) -> "SyncJobResponse":
        return cls(
            id=job.id,
            status=job.status,
            progress=job.progress,
            message=job.message,
            error=job.error,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )
