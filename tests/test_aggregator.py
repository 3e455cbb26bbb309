"""Tests for multi-repository activity aggregation."""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest

from daily_review.aggregator import ActivityAggregator, merge_commits
from daily_review.errors import DiffUnavailableError, OperationCanceledError
from daily_review.git.diffs import INITIAL_COMMIT_MARKER
from daily_review.models import ActivityWindow, Commit, RepositoryRef
from daily_review.progress import ProgressEventType
from tests.fixtures.git_repos import FIXED_DAY, local_time, requires_git


def make_commit(hash_char: str, timestamp: int, identity: str = "/work/api") -> Commit:
    return Commit(
        hash=hash_char * 40,
        message=f"commit {hash_char}",
        author="Ada",
        timestamp=timestamp,
        repo_name=identity.rsplit("/", 1)[-1],
        repo_identity=identity,
    )


class TestMergeCommits:
    """Merging per-repository commit lists."""

    def test_orders_across_repositories(self):
        """Test that the merged feed is most recent first across groups."""
        api = [make_commit("a", 300), make_commit("b", 100)]
        web = [make_commit("c", 200, "/work/web")]

        merged = merge_commits([api, web])

        assert [c.hash[0] for c in merged] == ["a", "c", "b"]

    def test_drops_duplicates_by_identity_and_hash(self):
        """Test that the same commit in the same repository appears once."""
        first = [make_commit("a", 300)]
        again = [make_commit("a", 300)]
        other_repo = [make_commit("a", 300, "/work/fork")]

        merged = merge_commits([first, again, other_repo])

        assert len(merged) == 2
        assert {c.repo_identity for c in merged} == {"/work/api", "/work/fork"}

    def test_independent_of_group_order(self):
        """Test that input order does not change the result."""
        groups = [
            [make_commit("a", 100), make_commit("b", 100)],
            [make_commit("c", 50, "/work/web")],
        ]

        assert merge_commits(groups) == merge_commits(list(reversed(groups)))


class TestAggregatorArguments:
    """Constructor validation and cancellation before any work."""

    def test_rejects_invalid_limits(self):
        """Test that nonsensical limits are refused."""
        with pytest.raises(ValueError):
            ActivityAggregator(max_concurrency=0)
        with pytest.raises(ValueError):
            ActivityAggregator(max_commits_per_repository=0)

    @pytest.mark.asyncio
    async def test_canceled_before_start(self, tmp_path):
        """Test that an already-set cancel event stops the scan immediately."""
        cancel_event = asyncio.Event()
        cancel_event.set()

        with pytest.raises(OperationCanceledError):
            await ActivityAggregator().scan([str(tmp_path)], cancel_event=cancel_event)

    @pytest.mark.asyncio
    async def test_no_repositories(self, fixed_window):
        """Test that scanning nothing returns an empty result."""
        result = await ActivityAggregator().scan([], fixed_window)

        assert result.commits == []
        assert result.warnings == []
        assert result.repository_count == 0


class TestUnreadableRepositories:
    """Repositories that cannot be opened become warnings."""

    @pytest.mark.asyncio
    async def test_missing_path_is_a_warning(self, tmp_path, fixed_window):
        """Test that a missing path does not fail the scan."""
        missing = str(tmp_path / "gone")
        events = []

        result = await ActivityAggregator(progress_callback=events.append).scan(
            [missing], fixed_window
        )

        assert result.commits == []
        assert result.unreadable == [missing]
        assert result.warnings == [f"repository {missing} unreadable: path does not exist"]
        assert result.readable_count == 0
        assert ProgressEventType.WARNING in [e.event_type for e in events]


@requires_git
@pytest.mark.git
class TestScan:
    """Scanning real repositories."""

    @pytest.mark.asyncio
    async def test_todays_commits_across_repositories(self, make_repo):
        """Test that only today's commits are returned, most recent first."""
        today = ActivityWindow.today().start.date()
        yesterday = today - timedelta(days=1)

        repo_a = make_repo("a")
        morning = repo_a.commit("morning work", local_time(today, 9))
        afternoon = repo_a.commit("afternoon work", local_time(today, 14))
        repo_b = make_repo("b")
        repo_b.commit("late night", local_time(yesterday, 23))

        result = await ActivityAggregator().scan([str(repo_a.path), str(repo_b.path)])

        assert [c.hash for c in result.commits] == [afternoon, morning]
        assert all(c.repo_name == "a" for c in result.commits)
        assert result.warnings == []
        assert result.repository_count == 2

    @pytest.mark.asyncio
    async def test_same_repository_twice(self, make_repo, fixed_window):
        """Test that one repository configured under two spellings is deduplicated."""
        builder = make_repo("api")
        builder.commit("work", local_time(FIXED_DAY, 10), {"src/app.py": "x\n"})

        result = await ActivityAggregator().scan(
            [str(builder.path), str(builder.path / "src"), f"{builder.path}/."],
            fixed_window,
        )

        assert len(result.commits) == 1
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_unreadable_among_readable(self, make_repo, tmp_path, fixed_window):
        """Test that one bad path leaves the other repositories' commits intact."""
        builder = make_repo("api")
        head = builder.commit("work", local_time(FIXED_DAY, 10))
        missing = str(tmp_path / "gone")

        result = await ActivityAggregator().scan(
            [missing, str(builder.path)], fixed_window
        )

        assert [c.hash for c in result.commits] == [head]
        assert result.unreadable == [missing]
        assert result.readable_count == 1
        assert len(result.warnings) == 1

    @pytest.mark.asyncio
    async def test_deterministic(self, make_repo, fixed_window):
        """Test that repeated scans of unchanged repositories are identical."""
        paths = []
        for name, hour in (("a", 9), ("b", 10), ("c", 11)):
            builder = make_repo(name)
            builder.commit(f"{name} work", local_time(FIXED_DAY, hour))
            paths.append(str(builder.path))

        aggregator = ActivityAggregator(max_concurrency=3)
        first = await aggregator.scan(paths, fixed_window)
        second = await aggregator.scan(list(reversed(paths)), fixed_window)

        assert first.commits == second.commits
        assert [c.summary for c in first.commits] == ["c work", "b work", "a work"]

    @pytest.mark.asyncio
    async def test_deep_analysis_toggle(self, make_repo, fixed_window):
        """Test that diffs are attached only with deep analysis."""
        builder = make_repo("api")
        builder.commit("Initial", local_time(FIXED_DAY, 9), {"app.py": "x = 1\n"})
        builder.commit("Bump", local_time(FIXED_DAY, 10), {"app.py": "x = 2\n"})
        aggregator = ActivityAggregator()

        shallow = await aggregator.scan([str(builder.path)], fixed_window)
        deep = await aggregator.scan(
            [str(builder.path)], fixed_window, deep_analysis=True
        )

        assert all(c.diff is None for c in shallow.commits)
        bump, initial = deep.commits
        assert "+x = 2" in bump.diff
        assert initial.diff.startswith(INITIAL_COMMIT_MARKER)
        assert [c.hash for c in deep.commits] == [c.hash for c in shallow.commits]

    @pytest.mark.asyncio
    async def test_diff_failure_degrades(self, make_repo, fixed_window):
        """Test that a failed diff keeps the commit without a diff and adds a warning."""
        builder = make_repo("api")
        head = builder.commit("work", local_time(FIXED_DAY, 10), {"a.txt": "a\n"})

        with patch(
            "daily_review.aggregator.summarize_diff",
            side_effect=DiffUnavailableError(head, "object missing"),
        ):
            result = await ActivityAggregator().scan(
                [str(builder.path)], fixed_window, deep_analysis=True
            )

        (commit,) = result.commits
        assert commit.hash == head
        assert commit.diff is None
        assert result.warnings == [f"api: diff unavailable for {head[:7]}: object missing"]
        assert result.unreadable == []

    @pytest.mark.asyncio
    async def test_truncation_warning(self, make_repo, fixed_window):
        """Test that exceeding the per-repository cap is reported."""
        builder = make_repo("api")
        for hour in (9, 10, 11):
            builder.commit(f"work {hour}", local_time(FIXED_DAY, hour))

        result = await ActivityAggregator(max_commits_per_repository=2).scan(
            [RepositoryRef(path=str(builder.path), alias="backend")], fixed_window
        )

        assert [c.summary for c in result.commits] == ["work 11", "work 10"]
        assert result.truncated == ["backend"]
        assert result.warnings == [
            "backend: more than 2 commits in window, only the most recent were kept"
        ]

    @pytest.mark.asyncio
    async def test_progress_events(self, make_repo, fixed_window):
        """Test that the scan reports start, per-repository progress and completion."""
        paths = []
        for name in ("a", "b"):
            builder = make_repo(name)
            builder.commit("work", local_time(FIXED_DAY, 9))
            paths.append(str(builder.path))
        events = []

        await ActivityAggregator(progress_callback=events.append).scan(paths, fixed_window)

        types = [e.event_type for e in events]
        assert types[0] == ProgressEventType.STARTED
        assert types[-1] == ProgressEventType.COMPLETED
        progress = [e for e in events if e.event_type == ProgressEventType.PROGRESS]
        assert [e.current for e in progress] == [1, 2]
        assert all(e.total == 2 for e in progress)

    @pytest.mark.asyncio
    async def test_canceled_mid_scan(self, make_repo, fixed_window):
        """Test that canceling after the first repository raises without a partial result."""
        paths = []
        for name in ("a", "b", "c"):
            builder = make_repo(name)
            builder.commit("work", local_time(FIXED_DAY, 9))
            paths.append(str(builder.path))
        cancel_event = asyncio.Event()
        scanned = []

        def on_progress(event):
            if event.event_type == ProgressEventType.PROGRESS:
                scanned.append(event.metadata["repository"])
                cancel_event.set()

        aggregator = ActivityAggregator(max_concurrency=1, progress_callback=on_progress)

        with pytest.raises(OperationCanceledError):
            await aggregator.scan(paths, fixed_window, cancel_event=cancel_event)

        assert scanned[0] == "a"
