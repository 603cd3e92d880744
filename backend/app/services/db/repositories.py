"""
Repository database service using Supabase Python SDK.

Handles the starred-repository catalog: id lookups and inserts for the sync
engine, paged listing for the API.
"""

import logging
from typing import Optional, Set

from supabase import Client

from app.core.config import get_settings
from app.exceptions import InvalidPagingParameterError, PersistenceError
from app.services.sync.models import RemoteRepo
from .base import BaseDbService

logger = logging.getLogger(__name__)

# PostgREST caps a single response at 1000 rows by default
ID_SCAN_BATCH_SIZE = 1000


class RepositoryService(BaseDbService):
    """Service for repository database operations."""

    table_name = "repositories"

    def get_repo_ids(self) -> Set[int]:
        """Get every github_id already stored for the current user."""
        ids: Set[int] = set()
        start = 0

        while True:
            response = self._query("github_id") \
                .order("github_id") \
                .range(start, start + ID_SCAN_BATCH_SIZE - 1) \
                .execute()
            rows = response.data or []
            ids.update(row["github_id"] for row in rows)

            if len(rows) < ID_SCAN_BATCH_SIZE:
                break
            start += ID_SCAN_BATCH_SIZE

        logger.debug(f"Loaded {len(ids)} repository ids", extra={'user_id': self.user_id})
        return ids

    def insert_repository(self, repo: RemoteRepo) -> bool:
        """
        Insert a starred repository for the current user.

        Conflicts on (user_id, github_id) are ignored, so inserting a known
        repository is a no-op.

        Returns:
            True if a new row was written
        """
        row = self._user_row(
            github_id=repo.id,
            name=repo.name,
            full_name=repo.full_name,
            description=repo.description,
            html_url=repo.html_url,
            stargazers_count=repo.stargazers_count,
            language=repo.language,
            topics=repo.topics,
            owner_login=repo.owner_login,
            owner_avatar_url=repo.owner_avatar_url,
            starred_at=repo.starred_at,
            is_starred=True,
        )

        try:
            response = self._table() \
                .upsert(row, on_conflict="user_id,github_id", ignore_duplicates=True) \
                .execute()
        except Exception as e:
            logger.error(
                f"Failed to insert repository {repo.full_name}",
                extra={'user_id': self.user_id, 'error': str(e)},
            )
            raise PersistenceError(f"insert repository {repo.full_name}", str(e)) from e

        return bool(response.data)

    def get_repositories_paged(
        self,
        page_nm: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> dict:
        """
        Get one page of the user's repositories, newest star first.

        Page numbers start at 1. Both parameters are validated before any
        query runs.

        Returns:
            {"items": [...], "page_nm": N, "page_size": N, "total": N}
        """
        settings = get_settings()
        limit = settings.default_page_size if page_size is None else page_size
        if limit <= 0:
            raise InvalidPagingParameterError("pageSize")

        page = settings.default_page_nm if page_nm is None else page_nm
        if page <= 0:
            raise InvalidPagingParameterError("pageNm")

        # Database offset is zero indexed
        offset = (page - 1) * limit

        response = self._query("*", count="exact") \
            .order("starred_at", desc=True) \
            .range(offset, offset + limit - 1) \
            .execute()

        return {
            "items": [self._row_to_dict(row) for row in response.data or []],
            "page_nm": page,
            "page_size": limit,
            "total": response.count or 0,
        }

    def _row_to_dict(self, row: dict) -> dict:
        """Convert database row to response dict."""
        return {
            "id": row["id"],
            "github_id": row["github_id"],
            "name": row["name"],
            "full_name": row["full_name"],
            "description": row.get("description"),
            "html_url": row["html_url"],
            "stargazers_count": row.get("stargazers_count", 0),
            "language": row.get("language"),
            "topics": row.get("topics") or [],
            "owner_login": row["owner_login"],
            "owner_avatar_url": row.get("owner_avatar_url"),
            "starred_at": row.get("starred_at"),
        }


class RepositoryCatalog:
    """
    Local persistence used by the reconciler.

    Not bound to a user: the reconciler passes the user id on every call
    and each call goes through a user-scoped RepositoryService.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_local_repo_ids(self, user_id: str) -> Set[int]:
        return RepositoryService(self.supabase, user_id).get_repo_ids()

    def insert_repo(self, repo: RemoteRepo, user_id: str) -> bool:
        return RepositoryService(self.supabase, user_id).insert_repository(repo)
