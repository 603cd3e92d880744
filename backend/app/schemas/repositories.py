"""
Pydantic schemas for the starred repository catalog.
"""

from datetime import datetime
from pydantic import BaseModel


class RepositoryResponse(BaseModel):
    """A synced starred repository (one `repositories` row)."""
    id: str
    github_id: int
    name: str
    full_name: str
    description: str | None = None
    html_url: str
    stargazers_count: int = 0
    language: str | None = None
    topics: list[str] = []
    owner_login: str
    owner_avatar_url: str | None = None
    starred_at: datetime | None = None


class PagedRepositoriesResponse(BaseModel):
    """
    One page of the catalog, newest star first.

    `page_nm` starts at 1; `total` counts all of the user's repositories.
    """
    items: list[RepositoryResponse]
    page_nm: int
    page_size: int
    total: int
