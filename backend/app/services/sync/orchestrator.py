"""
Repository sync orchestrator.

Owns the sync job lifecycle:

    start_sync ──create──> PENDING ──dispatch──> run_job
    run_job:   token ─> STARTED ─> reconcile (0.3, 0.6, 0.9) ─> COMPLETED
                 └───────── any error / cancellation ───────> FAILED

start_sync returns as soon as the job row exists and the work unit is
scheduled. Everything that goes wrong inside run_job ends up on the job
record, never in a caller's stack.
"""

import asyncio
import logging
from typing import Optional

from app.exceptions import AppException, MissingTokenError
from .contracts import TokenProvider
from .dispatcher import InProcessDispatcher, SyncDispatcher
from .job_store import JobStore
from .models import RepoSyncJob
from .progress import JobProgressReporter, SyncPhase
from .reconciler import Reconciler

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Sync cancelled before completion"


def describe_error(exc: BaseException) -> str:
    """Job-facing description of a failure."""
    if isinstance(exc, AppException):
        return exc.message
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class SyncOrchestrator:
    """Entry point of the repository sync engine."""

    def __init__(
        self,
        job_store: JobStore,
        token_provider: TokenProvider,
        reconciler: Reconciler,
        dispatcher: Optional[SyncDispatcher] = None,
    ):
        self.job_store = job_store
        self.token_provider = token_provider
        self.reconciler = reconciler
        self.dispatcher = dispatcher or InProcessDispatcher(
            self.run_job,
            on_cancelled=self._fail_cancelled,
        )

    async def start_sync(self, user_id: str) -> str:
        """
        Create a sync job for the user and schedule it.

        Raises:
            SyncInProgressError: the user already has a pending/running job
                (its id is on the exception)
        """
        job = self.job_store.create(user_id)
        logger.info(
            f"[REPO_SYNC] Created job {job.id} for user {user_id}",
            extra={"user_id": user_id, "job_id": job.id},
        )

        try:
            await self.dispatcher.dispatch(job.id, user_id)
        except Exception as e:
            # Nothing will ever run this job; close it before reporting the error
            self.job_store.mark_failed(job.id, f"Failed to schedule sync: {describe_error(e)}")
            raise

        return job.id

    def get_sync_job(self, job_id: str) -> RepoSyncJob:
        """Raises JobNotFoundError for unknown ids."""
        return self.job_store.get(job_id)

    async def run_job(self, job_id: str, user_id: str) -> None:
        """
        The work unit for one job.

        Always leaves the job terminal: completed on success, failed on any
        exception or cancellation. A job that is already terminal is left
        alone and nothing is fetched or written for it.
        """
        log_extra = {"user_id": user_id, "job_id": job_id}
        progress = JobProgressReporter(self.job_store, job_id)

        if self.job_store.get(job_id).is_terminal:
            logger.info(f"[REPO_SYNC] Job {job_id} already finished, not running it", extra=log_extra)
            return

        try:
            # Resolved before the first checkpoint: a missing token fails a PENDING job directly
            token = self.token_provider.get_user_token(user_id)
            if not token:
                raise MissingTokenError(user_id)

            if not await progress.report_phase(SyncPhase.STARTED):
                logger.info(f"[REPO_SYNC] Job {job_id} finished before it started", extra=log_extra)
                return

            result = await self.reconciler.reconcile(user_id, token, progress)

            self.job_store.mark_completed(job_id, SyncPhase.COMPLETED.message)
            logger.info(
                f"[REPO_SYNC] Job {job_id} completed: "
                f"{result.remote_total} starred, {result.new_count} new",
                extra=log_extra,
            )

        except asyncio.CancelledError:
            logger.warning(f"[REPO_SYNC] Job {job_id} cancelled", extra=log_extra)
            self.job_store.mark_failed(job_id, CANCELLED_MESSAGE)
            raise

        except MissingTokenError as e:
            logger.warning(
                f"[REPO_SYNC] No GitHub token for user {user_id}",
                extra={**log_extra, "error": e.message},
            )
            self.job_store.mark_failed(job_id, e.message)

        except Exception as e:
            error = describe_error(e)
            logger.exception(
                f"[REPO_SYNC] Unable to sync user stargazing data for job {job_id}: {error}",
                extra={**log_extra, "error": error},
            )
            self.job_store.mark_failed(job_id, error)

    def _fail_cancelled(self, job_id: str) -> None:
        # Also covers tasks cancelled before run_job got to its first line
        self.job_store.mark_failed(job_id, CANCELLED_MESSAGE)


def build_sync_orchestrator(dispatch_mode: Optional[str] = None) -> SyncOrchestrator:
    """
    Wire the orchestrator from configuration.

    dispatch_mode: "local" runs jobs as asyncio tasks in this process,
        "celery" sends them to a worker. Defaults to SYNC_DISPATCH_MODE.
    """
    from app.core.config import DISPATCH_MODE_CELERY, get_settings
    from app.services.db.repositories import RepositoryCatalog
    from app.services.db.settings import GitHubTokenProvider
    from app.services.db.sync_jobs import SupabaseJobStore
    from app.services.github_client import GitHubStarsClient
    from app.supabase_client import get_service_client
    from .dispatcher import CeleryDispatcher

    settings = get_settings()
    supabase = get_service_client()

    reconciler = Reconciler(
        repo_store=RepositoryCatalog(supabase),
        fetcher=GitHubStarsClient(),
        fetch_timeout=settings.github_fetch_timeout_seconds,
    )
    mode = dispatch_mode or settings.sync_dispatch_mode
    dispatcher = CeleryDispatcher() if mode == DISPATCH_MODE_CELERY else None

    return SyncOrchestrator(
        job_store=SupabaseJobStore(supabase),
        token_provider=GitHubTokenProvider(supabase),
        reconciler=reconciler,
        dispatcher=dispatcher,
    )
