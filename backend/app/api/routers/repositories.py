"""
GitHub repositories API endpoints.

Provides paged access to the user's synced starred repositories.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.dependencies import get_repository_service
from app.schemas.repositories import PagedRepositoriesResponse
from app.services.db.repositories import RepositoryService

router = APIRouter(prefix="/repositories", tags=["repositories"])


@router.get("", response_model=PagedRepositoriesResponse)
async def get_repositories(
    page_nm: Optional[int] = Query(None, description="Page number, starting at 1"),
    page_size: Optional[int] = Query(None, description="Repositories per page"),
    service: RepositoryService = Depends(get_repository_service),
):
    """Get one page of starred repositories for current user."""
    return service.get_repositories_paged(page_nm, page_size)
