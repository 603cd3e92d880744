"""
Shared fixtures for the sync engine tests.
"""

import pytest

from app.services.sync.orchestrator import SyncOrchestrator
from app.services.sync.reconciler import Reconciler

from fakes import GITHUB_TOKEN, USER_ID, FakeFetcher, FakeRepoStore, FakeTokenProvider, RecordingJobStore, make_repo


@pytest.fixture
def job_store():
    return RecordingJobStore()


@pytest.fixture
def token_provider():
    return FakeTokenProvider({USER_ID: GITHUB_TOKEN})


@pytest.fixture
def fetcher():
    return FakeFetcher([make_repo(1), make_repo(2), make_repo(3)])


@pytest.fixture
def repo_store():
    return FakeRepoStore()


@pytest.fixture
def reconciler(repo_store, fetcher):
    return Reconciler(repo_store=repo_store, fetcher=fetcher, fetch_timeout=5)


@pytest.fixture
def orchestrator(job_store, token_provider, reconciler):
    return SyncOrchestrator(
        job_store=job_store,
        token_provider=token_provider,
        reconciler=reconciler,
    )

