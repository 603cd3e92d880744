"""
Repository sync engine.

Provides clean separation of concerns for GitHub starred-repository sync:
- SyncOrchestrator: job lifecycle, entry point
- Reconciler: remote vs local diff, inserts new repos only
- JobStore / InMemoryJobStore: durable job record with atomic point-writes
- SyncDispatcher: runs work units (asyncio tasks or Celery)
- ProgressReporter / SyncPhase: checkpoint reporting
"""

from .dispatcher import CeleryDispatcher, InProcessDispatcher, SyncDispatcher
from .job_store import InMemoryJobStore, JobStore
from .models import ReconcileResult, RemoteRepo, RepoSyncJob, SyncJobStatus
from .orchestrator import SyncOrchestrator, build_sync_orchestrator
from .progress import JobProgressReporter, ProgressReporter, SyncPhase
from .reconciler import Reconciler

__all__ = [
    "CeleryDispatcher",
    "InProcessDispatcher",
    "SyncDispatcher",
    "InMemoryJobStore",
    "JobStore",
    "ReconcileResult",
    "RemoteRepo",
    "RepoSyncJob",
    "SyncJobStatus",
    "SyncOrchestrator",
    "build_sync_orchestrator",
    "JobProgressReporter",
    "ProgressReporter",
    "SyncPhase",
    "Reconciler",
]
