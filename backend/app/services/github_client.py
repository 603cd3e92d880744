"""
GitHub starred-repository client.

Pulls the user's complete current star list (full replace semantics: the
caller always gets every starred repo, never a delta).
"""

import asyncio
import logging
from typing import List, Optional

import httpx

from app.core.config import get_settings
from app.exceptions import AuthenticationError, RateLimitError, RemoteFetchError
from app.services.sync.models import RemoteRepo

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class GitHubStarsClient:
    """Fetches starred repositories from the GitHub REST API."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        per_page: Optional[int] = None,
        timeout: Optional[float] = None,
        page_delay: float = 0.1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.per_page = per_page or settings.github_page_size
        self.timeout = timeout or settings.github_request_timeout_seconds
        self.page_delay = page_delay
        self._transport = transport

    async def fetch_starred_repos(self, token: str) -> List[RemoteRepo]:
        """Fetch all starred repositories with pagination."""
        all_repos: List[RemoteRepo] = []
        page = 1

        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            while True:
                items = await self._fetch_page(client, token, page)
                if not items:
                    break

                all_repos.extend(RemoteRepo.from_github(item) for item in items)

                if len(items) < self.per_page:
                    break

                page += 1
                if self.page_delay:
                    await asyncio.sleep(self.page_delay)

        logger.info(f"Fetched {len(all_repos)} starred repositories from GitHub")
        return all_repos

    async def _fetch_page(self, client: httpx.AsyncClient, token: str, page: int) -> list:
        try:
            response = await client.get(
                f"{self.api_url}/user/starred",
                params={"page": page, "per_page": self.per_page, "sort": "created"},
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/vnd.github.star+json",
                    "X-GitHub-Api-Version": GITHUB_API_VERSION,
                },
            )
        except httpx.TimeoutException as e:
            raise RemoteFetchError("GitHub API", f"timeout on page {page}") from e
        except httpx.HTTPError as e:
            raise RemoteFetchError("GitHub API", f"{type(e).__name__}: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("GitHub token")
        if response.status_code in (403, 429):
            raise RateLimitError("GitHub API")
        if response.status_code != 200:
            raise RemoteFetchError("GitHub API", f"status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise RemoteFetchError("GitHub API", "invalid JSON response") from e
