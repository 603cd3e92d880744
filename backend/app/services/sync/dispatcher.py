"""
Sync job dispatchers.

A dispatcher runs the work unit for a job independently of the request that
created it. The job id is the only handle callers ever see.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional

from app.core.config import SYNC_QUEUE

logger = logging.getLogger(__name__)

WorkerFn = Callable[[str, str], Awaitable[None]]
CancelledFn = Callable[[str], None]


class SyncDispatcher(ABC):
    """Abstract interface for job dispatching (in-process or Celery)."""

    @abstractmethod
    async def dispatch(self, job_id: str, user_id: str) -> None:
        """Schedule the work unit for a job. Must not wait for it to finish."""
        ...

    async def start(self) -> None:
        """Start the dispatcher."""

    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""


class InProcessDispatcher(SyncDispatcher):
    """
    Runs each job as an asyncio task on the current event loop.

    Task handles are kept until the task finishes, so shutdown can cancel
    and await everything still running. Once stopped, no new jobs are
    accepted.
    """

    def __init__(self, worker_fn: WorkerFn, on_cancelled: Optional[CancelledFn] = None):
        """
        worker_fn: async callable(job_id, user_id) -> None
            The work unit. Expected to record its own outcome on the job.
        on_cancelled: callable(job_id) -> None
            Called by stop() for every task it cancelled, including tasks
            that never started and so never saw the cancellation.
        """
        self._worker_fn = worker_fn
        self._on_cancelled = on_cancelled
        self._tasks: Dict[str, asyncio.Task] = {}
        self._stopped = False

    @property
    def running_jobs(self) -> list[str]:
        return list(self._tasks)

    async def dispatch(self, job_id: str, user_id: str) -> None:
        if self._stopped:
            raise RuntimeError("Sync dispatcher is shut down")

        task = asyncio.create_task(
            self._worker_fn(job_id, user_id),
            name=f"repo-sync:{job_id}",
        )
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_done(job_id, t))

    async def join(self) -> None:
        """Wait until every dispatched job has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def stop(self) -> None:
        self._stopped = True
        tasks = dict(self._tasks)
        for task in tasks.values():
            task.cancel()
        if not tasks:
            return

        await asyncio.gather(*tasks.values(), return_exceptions=True)
        cancelled = [job_id for job_id, task in tasks.items() if task.cancelled()]
        if self._on_cancelled is not None:
            for job_id in cancelled:
                self._notify_cancelled(job_id)
        logger.info(f"Cancelled {len(cancelled)} running sync job(s)")

    def _notify_cancelled(self, job_id: str) -> None:
        try:
            self._on_cancelled(job_id)
        except Exception as e:
            logger.error(
                f"[REPO_SYNC] Could not record cancellation of job {job_id}: {e}",
                exc_info=True,
                extra={"job_id": job_id, "error": str(e)},
            )

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # The work unit records failures itself; this is only reached when that failed too
            logger.error(
                f"[REPO_SYNC] Work unit for job {job_id} crashed: {exc}",
                exc_info=exc,
                extra={"job_id": job_id, "error": str(exc)},
            )


class CeleryDispatcher(SyncDispatcher):
    """Sends each job to a Celery worker through Redis."""

    def __init__(self, queue: str = SYNC_QUEUE):
        self.queue = queue

    async def dispatch(self, job_id: str, user_id: str) -> None:
        from app.celery_app.repository_tasks import run_repo_sync_job

        result = run_repo_sync_job.apply_async(
            kwargs={"job_id": job_id, "user_id": user_id},
            queue=self.queue,
        )
        logger.info(
            f"[REPO_SYNC] Queued job {job_id} (task_id={result.id})",
            extra={"user_id": user_id, "job_id": job_id},
        )
