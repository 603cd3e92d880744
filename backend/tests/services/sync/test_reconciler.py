"""
Tests for starred repository reconciliation.
"""

import pytest

from app.exceptions import PersistenceError, RemoteFetchError
from app.services.sync.progress import SyncPhase
from app.services.sync.reconciler import Reconciler

from fakes import GITHUB_TOKEN, USER_ID, FakeFetcher, FakeRepoStore, make_repo


class PhaseRecorder:
    def __init__(self):
        self.phases = []

    async def report_phase(self, phase, **data):
        self.phases.append((phase, data))


class TestReconcile:
    """Tests for the diff-and-insert pass"""

    @pytest.mark.asyncio
    async def test_inserts_only_unseen_repos(self):
        a, b, c, d = make_repo(1, "a"), make_repo(2, "b"), make_repo(3, "c"), make_repo(4, "d")
        repo_store = FakeRepoStore({USER_ID: [a, b]})
        reconciler = Reconciler(repo_store, FakeFetcher([a, c, d]))

        result = await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        assert sorted(result.inserted_ids) == [3, 4]
        assert result.remote_total == 3
        assert result.local_before == 2
        assert result.new_count == 2
        # Unstarred repos are never removed
        assert repo_store.ids(USER_ID) == {1, 2, 3, 4}

    @pytest.mark.asyncio
    async def test_second_run_inserts_nothing(self):
        repo_store = FakeRepoStore()
        reconciler = Reconciler(repo_store, FakeFetcher([make_repo(1), make_repo(2)]))

        await reconciler.reconcile(USER_ID, GITHUB_TOKEN)
        repo_store.insert_calls.clear()
        result = await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        assert result.new_count == 0
        assert repo_store.insert_calls == []

    @pytest.mark.asyncio
    async def test_duplicate_remote_entries_inserted_once(self):
        repo_store = FakeRepoStore()
        reconciler = Reconciler(repo_store, FakeFetcher([make_repo(7), make_repo(7)]))

        result = await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        assert result.inserted_ids == [7]
        assert repo_store.insert_calls == [(USER_ID, 7)]

    @pytest.mark.asyncio
    async def test_empty_remote_list(self):
        repo_store = FakeRepoStore({USER_ID: [make_repo(1)]})
        reconciler = Reconciler(repo_store, FakeFetcher([]))

        result = await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        assert result.remote_total == 0
        assert result.new_count == 0
        assert repo_store.ids(USER_ID) == {1}

    @pytest.mark.asyncio
    async def test_other_users_repos_do_not_count_as_seen(self):
        repo_store = FakeRepoStore({"user-2": [make_repo(1)]})
        reconciler = Reconciler(repo_store, FakeFetcher([make_repo(1)]))

        result = await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        assert result.inserted_ids == [1]

    @pytest.mark.asyncio
    async def test_reports_checkpoints_in_order(self):
        recorder = PhaseRecorder()
        reconciler = Reconciler(FakeRepoStore(), FakeFetcher([make_repo(1)]))

        await reconciler.reconcile(USER_ID, GITHUB_TOKEN, recorder)

        phases = [phase for phase, _ in recorder.phases]
        assert phases == [SyncPhase.LOCAL_LOADED, SyncPhase.REMOTE_FETCHED, SyncPhase.PERSISTED]
        assert [p.progress for p in phases] == [0.3, 0.6, 0.9]
        assert recorder.phases[-1][1] == {"inserted": 1}


class TestReconcileFailures:
    """Tests for error propagation"""

    @pytest.mark.asyncio
    async def test_fetch_error_propagates_without_writes(self):
        recorder = PhaseRecorder()
        repo_store = FakeRepoStore()
        fetcher = FakeFetcher(error=RemoteFetchError("GitHub API", "status 500"))
        reconciler = Reconciler(repo_store, fetcher)

        with pytest.raises(RemoteFetchError):
            await reconciler.reconcile(USER_ID, GITHUB_TOKEN, recorder)

        assert repo_store.insert_calls == []
        assert [phase for phase, _ in recorder.phases] == [SyncPhase.LOCAL_LOADED]

    @pytest.mark.asyncio
    async def test_fetch_timeout_becomes_remote_fetch_error(self):
        fetcher = FakeFetcher([make_repo(1)])
        fetcher.delay = 1
        repo_store = FakeRepoStore()
        reconciler = Reconciler(repo_store, fetcher, fetch_timeout=0.01)

        with pytest.raises(RemoteFetchError) as exc_info:
            await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        assert "timed out" in exc_info.value.message
        assert repo_store.insert_calls == []

    @pytest.mark.asyncio
    async def test_persistence_error_aborts_after_committed_inserts(self):
        repo_store = FakeRepoStore()
        repo_store.fail_on_insert = 2
        reconciler = Reconciler(repo_store, FakeFetcher([make_repo(1), make_repo(2), make_repo(3)]))

        with pytest.raises(PersistenceError):
            await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        # Repo 1 stays; repo 3 is never attempted
        assert repo_store.ids(USER_ID) == {1}
        assert [repo_id for _, repo_id in repo_store.insert_calls] == [1, 2]

    @pytest.mark.asyncio
    async def test_rerun_after_partial_failure_finishes_the_rest(self):
        repo_store = FakeRepoStore()
        repo_store.fail_on_insert = 2
        reconciler = Reconciler(repo_store, FakeFetcher([make_repo(1), make_repo(2), make_repo(3)]))

        with pytest.raises(PersistenceError):
            await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        repo_store.fail_on_insert = None
        result = await reconciler.reconcile(USER_ID, GITHUB_TOKEN)

        assert sorted(result.inserted_ids) == [2, 3]
        assert repo_store.ids(USER_ID) == {1, 2, 3}
