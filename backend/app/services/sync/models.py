"""Sync job record and repository data models."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncJobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncJobStatus.COMPLETED, SyncJobStatus.FAILED)


UNFINISHED_STATUSES = (SyncJobStatus.PENDING, SyncJobStatus.RUNNING)


class RepoSyncJob(BaseModel):
    """Tracks the lifecycle of one repository sync for one user."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    status: SyncJobStatus = SyncJobStatus.PENDING
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    message: str = "Sync job created"
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def from_row(cls, row: dict) -> "RepoSyncJob":
        """Build from a `repo_sync_jobs` database row."""
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            status=SyncJobStatus(row["status"]),
            progress=float(row.get("progress") or 0.0),
            message=row.get("message") or "",
            error=row.get("error"),
            created_at=row["created_at"],
            completed_at=row.get("completed_at"),
        )


class RemoteRepo(BaseModel):
    """A starred repository as returned by the GitHub API."""
    id: int
    name: str
    full_name: str
    owner_login: str = ""
    owner_avatar_url: Optional[str] = None
    description: Optional[str] = None
    html_url: str = ""
    language: Optional[str] = None
    stargazers_count: int = 0
    topics: List[str] = Field(default_factory=list)
    starred_at: Optional[datetime] = None

    @classmethod
    def from_github(cls, item: dict[str, Any]) -> "RemoteRepo":
        """
        Build from a `/user/starred` item.

        With `Accept: application/vnd.github.star+json` each item is
        `{"starred_at": ..., "repo": {...}}`; the plain media type returns
        the repo object directly.
        """
        repo = item.get("repo", item)
        owner = repo.get("owner") or {}
        return cls(
            id=repo["id"],
            name=repo["name"],
            full_name=repo.get("full_name") or repo["name"],
            owner_login=owner.get("login", ""),
            owner_avatar_url=owner.get("avatar_url"),
            description=repo.get("description"),
            html_url=repo.get("html_url", ""),
            language=repo.get("language"),
            stargazers_count=repo.get("stargazers_count") or 0,
            topics=repo.get("topics") or [],
            starred_at=item.get("starred_at"),
        )


class ReconcileResult(BaseModel):
    """Outcome of one reconciliation run."""
    remote_total: int = 0
    local_before: int = 0
    inserted_ids: List[int] = Field(default_factory=list)

    @property
    def new_count(self) -> int:
        return len(self.inserted_ids)
