"""
Starred repository reconciliation.

Diffs the user's current GitHub stars against the ids already stored and
inserts only the new ones. The local catalog is append-only with respect to
sync: repos unstarred on GitHub are never removed.
"""

import asyncio
import logging
from typing import Any, Optional

from app.exceptions import RemoteFetchError
from .contracts import LocalRepoStore, StarredRepoFetcher
from .models import ReconcileResult
from .progress import ProgressReporter, SyncPhase

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Phases:
    1. Load ids already stored for the user
    2. Fetch the full star list from GitHub (bounded by fetch_timeout)
    3. Insert repos not seen before

    A fetch or persistence error aborts the run. Inserts committed before
    the error stay; the next run skips them by id.
    """

    def __init__(
        self,
        repo_store: LocalRepoStore,
        fetcher: StarredRepoFetcher,
        fetch_timeout: Optional[float] = None,
    ):
        self.repo_store = repo_store
        self.fetcher = fetcher
        self.fetch_timeout = fetch_timeout

    async def reconcile(
        self,
        user_id: str,
        token: str,
        progress: Optional[ProgressReporter] = None,
    ) -> ReconcileResult:
        # Phase 1: Local ids
        logger.info(f"Getting current syncd user repos for userId: {user_id}", extra={'user_id': user_id})
        known_ids = set(self.repo_store.list_local_repo_ids(user_id))
        local_before = len(known_ids)
        await self._report(progress, SyncPhase.LOCAL_LOADED, local=local_before)

        # Phase 2: Remote stars
        logger.info("Pulling user stargazing data from GitHub", extra={'user_id': user_id})
        remote_repos = await self._fetch(token)
        await self._report(progress, SyncPhase.REMOTE_FETCHED, remote=len(remote_repos))

        # Phase 3: Insert unseen repos
        inserted_ids = []
        for repo in remote_repos:
            if repo.id in known_ids:
                continue
            logger.debug(f"Previously unsyncd repo {repo.full_name} found, syncing...")
            self.repo_store.insert_repo(repo, user_id)
            # Duplicates inside one remote listing are inserted once
            known_ids.add(repo.id)
            inserted_ids.append(repo.id)

        await self._report(progress, SyncPhase.PERSISTED, inserted=len(inserted_ids))

        logger.info(
            f"Reconciled {len(remote_repos)} starred repos, {len(inserted_ids)} new",
            extra={'user_id': user_id},
        )
        return ReconcileResult(
            remote_total=len(remote_repos),
            local_before=local_before,
            inserted_ids=inserted_ids,
        )

    async def _fetch(self, token: str):
        if not self.fetch_timeout:
            return await self.fetcher.fetch_starred_repos(token)
        try:
            return await asyncio.wait_for(
                self.fetcher.fetch_starred_repos(token),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError as e:
            raise RemoteFetchError(
                "GitHub API", f"fetch timed out after {self.fetch_timeout:g}s"
            ) from e

    @staticmethod
    async def _report(progress: Optional[ProgressReporter], phase: SyncPhase, **data: Any) -> None:
        if progress:
            await progress.report_phase(phase, **data)
