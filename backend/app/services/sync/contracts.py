"""Collaborators the sync engine depends on, as structural protocols."""

from typing import List, Optional, Protocol, Set

from .models import RemoteRepo


class TokenProvider(Protocol):
    def get_user_token(self, user_id: str) -> Optional[str]:
        """Stored GitHub token for the user; None or "" when absent."""
        ...


class StarredRepoFetcher(Protocol):
    async def fetch_starred_repos(self, token: str) -> List[RemoteRepo]:
        """The user's complete current star list."""
        ...


class LocalRepoStore(Protocol):
    def list_local_repo_ids(self, user_id: str) -> Set[int]:
        ...

    def insert_repo(self, repo: RemoteRepo, user_id: str) -> bool:
        """Persist a repo for the user; inserting a known id is a no-op."""
        ...
