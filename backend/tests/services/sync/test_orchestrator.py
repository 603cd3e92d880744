"""
Tests for the sync job lifecycle driven by SyncOrchestrator.
"""

import asyncio

import pytest

from app.exceptions import (
    AuthenticationError,
    JobNotFoundError,
    MissingTokenError,
    PersistenceError,
    RemoteFetchError,
    SyncInProgressError,
)
from app.services.sync.dispatcher import SyncDispatcher
from app.services.sync.models import SyncJobStatus
from app.services.sync.orchestrator import (
    CANCELLED_MESSAGE,
    SyncOrchestrator,
    describe_error,
)
from app.services.sync.reconciler import Reconciler

from fakes import GITHUB_TOKEN, USER_ID, FakeFetcher, FakeRepoStore, FakeTokenProvider, make_repo

MISSING_TOKEN_MESSAGE = "No user access token found, this is possibly due to user being deleted"


class BrokenDispatcher(SyncDispatcher):
    async def dispatch(self, job_id, user_id):
        raise ConnectionError("redis unreachable")


class TestStartSync:
    """Tests for job creation and scheduling"""

    @pytest.mark.asyncio
    async def test_returns_job_id_and_runs_to_completion(self, orchestrator, job_store, repo_store):
        job_id = await orchestrator.start_sync(USER_ID)

        assert job_id in job_store.created
        await orchestrator.dispatcher.join()

        job = orchestrator.get_sync_job(job_id)
        assert job.status == SyncJobStatus.COMPLETED
        assert job.progress == 1.0
        assert job.message == "Update completed!"
        assert job.error is None
        assert job.completed_at is not None
        assert repo_store.ids(USER_ID) == {1, 2, 3}

    @pytest.mark.asyncio
    async def test_returns_before_work_finishes(self, orchestrator, fetcher):
        fetcher.gate = asyncio.Event()

        job_id = await orchestrator.start_sync(USER_ID)
        await asyncio.sleep(0)

        assert not orchestrator.get_sync_job(job_id).is_terminal
        assert orchestrator.dispatcher.running_jobs == [job_id]

        fetcher.gate.set()
        await orchestrator.dispatcher.join()
        assert orchestrator.get_sync_job(job_id).status == SyncJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_second_start_while_running_reports_same_job(self, orchestrator, fetcher):
        fetcher.gate = asyncio.Event()
        job_id = await orchestrator.start_sync(USER_ID)

        with pytest.raises(SyncInProgressError) as exc_info:
            await orchestrator.start_sync(USER_ID)

        assert exc_info.value.job_id == job_id
        fetcher.gate.set()
        await orchestrator.dispatcher.join()

    @pytest.mark.asyncio
    async def test_concurrent_starts_share_one_job(self, orchestrator, job_store):
        results = await asyncio.gather(
            orchestrator.start_sync(USER_ID),
            orchestrator.start_sync(USER_ID),
            return_exceptions=True,
        )
        await orchestrator.dispatcher.join()

        created = [r for r in results if isinstance(r, str)]
        rejected = [r for r in results if isinstance(r, SyncInProgressError)]
        assert len(created) == 1
        assert len(rejected) == 1
        assert rejected[0].job_id == created[0]
        assert len(job_store.created) == 1

    @pytest.mark.asyncio
    async def test_new_job_allowed_after_completion(self, orchestrator):
        first = await orchestrator.start_sync(USER_ID)
        await orchestrator.dispatcher.join()

        second = await orchestrator.start_sync(USER_ID)
        await orchestrator.dispatcher.join()

        assert second != first
        assert orchestrator.get_sync_job(second).status == SyncJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_dispatch_failure_fails_job_and_raises(self, job_store, token_provider, reconciler):
        orchestrator = SyncOrchestrator(job_store, token_provider, reconciler, dispatcher=BrokenDispatcher())

        with pytest.raises(ConnectionError):
            await orchestrator.start_sync(USER_ID)

        job = job_store.get(job_store.created[0])
        assert job.status == SyncJobStatus.FAILED
        assert job.error == "Failed to schedule sync: ConnectionError: redis unreachable"
        # The failed job does not block the next attempt
        assert job_store.get_most_recent_unfinished(USER_ID) is None


class TestGetSyncJob:

    def test_unknown_id(self, orchestrator):
        with pytest.raises(JobNotFoundError):
            orchestrator.get_sync_job("00000000-0000-0000-0000-000000000000")


class TestRunJob:
    """Tests for the work unit and its failure routing"""

    @pytest.mark.asyncio
    async def test_progress_only_moves_forward(self, orchestrator, job_store):
        job = job_store.create(USER_ID)

        await orchestrator.run_job(job.id, USER_ID)

        history = job_store.history[job.id]
        progresses = [progress for _, progress in history]
        assert progresses == sorted(progresses)
        assert progresses[-1] == 1.0
        assert [status for status, _ in history] == [
            SyncJobStatus.PENDING,
            SyncJobStatus.RUNNING,
            SyncJobStatus.RUNNING,
            SyncJobStatus.RUNNING,
            SyncJobStatus.RUNNING,
            SyncJobStatus.COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_missing_token_fails_without_touching_repos(self, job_store, reconciler, repo_store, fetcher):
        orchestrator = SyncOrchestrator(job_store, FakeTokenProvider({}), reconciler)
        job = job_store.create(USER_ID)

        await orchestrator.run_job(job.id, USER_ID)

        failed = job_store.get(job.id)
        assert failed.status == SyncJobStatus.FAILED
        assert failed.error == MISSING_TOKEN_MESSAGE
        assert failed.message == MISSING_TOKEN_MESSAGE
        assert job_store.history[job.id] == [(SyncJobStatus.PENDING, 0.0), (SyncJobStatus.FAILED, 0.0)]
        assert MissingTokenError.MESSAGE == MISSING_TOKEN_MESSAGE
        assert repo_store.list_calls == []
        assert repo_store.insert_calls == []
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_empty_token_treated_as_missing(self, job_store, reconciler, fetcher):
        orchestrator = SyncOrchestrator(job_store, FakeTokenProvider({USER_ID: ""}), reconciler)
        job = job_store.create(USER_ID)

        await orchestrator.run_job(job.id, USER_ID)

        assert job_store.get(job.id).error == MISSING_TOKEN_MESSAGE
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_fetch_error_recorded_on_job(self, job_store, token_provider, repo_store):
        reconciler = Reconciler(repo_store, FakeFetcher(error=AuthenticationError("GitHub token")))
        orchestrator = SyncOrchestrator(job_store, token_provider, reconciler)
        job = job_store.create(USER_ID)

        await orchestrator.run_job(job.id, USER_ID)

        failed = job_store.get(job.id)
        assert failed.status == SyncJobStatus.FAILED
        assert failed.error == "GitHub API error: invalid GitHub token"
        assert failed.progress == 0.3
        assert repo_store.insert_calls == []

    @pytest.mark.asyncio
    async def test_persistence_error_recorded_on_job(self, job_store, token_provider):
        repo_store = FakeRepoStore()
        repo_store.fail_on_insert = 2
        reconciler = Reconciler(repo_store, FakeFetcher([make_repo(1), make_repo(2)]))
        orchestrator = SyncOrchestrator(job_store, token_provider, reconciler)
        job = job_store.create(USER_ID)

        await orchestrator.run_job(job.id, USER_ID)

        failed = job_store.get(job.id)
        assert failed.status == SyncJobStatus.FAILED
        assert failed.error.startswith("Failed to insert repository octocat/repo-2")
        assert repo_store.ids(USER_ID) == {1}

    @pytest.mark.asyncio
    async def test_unexpected_error_recorded_with_type(self, job_store, reconciler):
        provider = FakeTokenProvider(error=RuntimeError("settings table unavailable"))
        orchestrator = SyncOrchestrator(job_store, provider, reconciler)
        job = job_store.create(USER_ID)

        await orchestrator.run_job(job.id, USER_ID)

        assert job_store.get(job.id).error == "RuntimeError: settings table unavailable"

    @pytest.mark.asyncio
    async def test_cancellation_fails_job(self, orchestrator, fetcher):
        fetcher.gate = asyncio.Event()
        job_id = await orchestrator.start_sync(USER_ID)
        await asyncio.sleep(0)

        await orchestrator.dispatcher.stop()

        job = orchestrator.get_sync_job(job_id)
        assert job.status == SyncJobStatus.FAILED
        assert job.error == CANCELLED_MESSAGE
        assert orchestrator.dispatcher.running_jobs == []

    @pytest.mark.asyncio
    async def test_stop_before_job_starts_fails_it(self, orchestrator, job_store, fetcher):
        job_id = await orchestrator.start_sync(USER_ID)

        await orchestrator.dispatcher.stop()

        job = job_store.get(job_id)
        assert job.status == SyncJobStatus.FAILED
        assert job.error == CANCELLED_MESSAGE
        assert fetcher.calls == []
        assert job_store.get_most_recent_unfinished(USER_ID) is None

    @pytest.mark.asyncio
    async def test_start_after_shutdown_fails_new_job(self, orchestrator, job_store):
        await orchestrator.dispatcher.stop()

        with pytest.raises(RuntimeError):
            await orchestrator.start_sync(USER_ID)

        job = job_store.get(job_store.created[0])
        assert job.status == SyncJobStatus.FAILED
        assert job.error == "Failed to schedule sync: RuntimeError: Sync dispatcher is shut down"
        assert job_store.get_most_recent_unfinished(USER_ID) is None

    @pytest.mark.asyncio
    async def test_run_on_finished_job_leaves_it_alone(
        self, orchestrator, job_store, token_provider, fetcher, repo_store
    ):
        job = job_store.create(USER_ID)
        job_store.mark_failed(job.id, "earlier failure")

        await orchestrator.run_job(job.id, USER_ID)

        final = job_store.get(job.id)
        assert final.status == SyncJobStatus.FAILED
        assert final.error == "earlier failure"
        assert token_provider.calls == []
        assert fetcher.calls == []
        assert repo_store.list_calls == []
        assert repo_store.insert_calls == []

    @pytest.mark.asyncio
    async def test_job_finished_during_token_lookup_is_not_synced(
        self, orchestrator, job_store, token_provider, fetcher, repo_store
    ):
        job = job_store.create(USER_ID)

        def lookup_while_job_fails(user_id):
            job_store.mark_failed(job.id, "failed elsewhere")
            return GITHUB_TOKEN

        token_provider.get_user_token = lookup_while_job_fails

        await orchestrator.run_job(job.id, USER_ID)

        assert job_store.get(job.id).error == "failed elsewhere"
        assert fetcher.calls == []
        assert repo_store.insert_calls == []


class TestDescribeError:

    def test_app_exception_uses_message(self):
        assert describe_error(RemoteFetchError("GitHub API", "status 500")) == "GitHub API error: status 500"
        assert describe_error(PersistenceError("insert repository a/b")) == "Failed to insert repository a/b"

    def test_other_exceptions_include_type(self):
        assert describe_error(ValueError("bad")) == "ValueError: bad"
        assert describe_error(TimeoutError()) == "TimeoutError"
