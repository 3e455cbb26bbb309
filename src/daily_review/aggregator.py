"""Activity aggregation across all configured repositories.

Each repository is scanned in its own task. Per-repository problems are
collected as values (never raised) so a single unreadable repository or a
single failed diff cannot abort the scan. Once every task has finished, the
results are merged, sorted and deduplicated, which keeps the output
independent of task completion order.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from daily_review.errors import (
    DiffUnavailableError,
    GitCommandError,
    OperationCanceledError,
    RepositoryError,
)
from daily_review.git.commits import extract_commits, sort_commits
from daily_review.git.diffs import MAX_DIFF_CHARS, summarize_diff
from daily_review.git.repository import GitRepository, open_repository
from daily_review.models import ActivityWindow, Commit, RepositoryRef, ScanResult
from daily_review.progress import ProgressCallback, ProgressNotifier

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMMITS = 300
DEFAULT_CONCURRENCY = 4


@dataclass
class _RepositoryScan:
    """Outcome of scanning one repository, failures included."""

    ref: RepositoryRef
    commits: list[Commit] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    unreadable: bool = False
    truncated: bool = False


def merge_commits(groups: Iterable[list[Commit]]) -> list[Commit]:
    """Merge per-repository commit lists into one ordered, duplicate-free feed.

    Commits are unique by (repository identity, hash); the first occurrence
    after sorting wins.
    """
    seen: set[tuple[str, str]] = set()
    merged = []
    for commit in sort_commits([c for group in groups for c in group]):
        key = (commit.repo_identity, commit.hash)
        if key not in seen:
            seen.add(key)
            merged.append(commit)
    return merged


def _as_ref(repository: RepositoryRef | str) -> RepositoryRef:
    if isinstance(repository, RepositoryRef):
        return repository
    return RepositoryRef(path=repository)


def _is_canceled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


class ActivityAggregator:
    """Scans many repositories and merges their commits into one feed."""

    def __init__(
        self,
        max_commits_per_repository: int | None = DEFAULT_MAX_COMMITS,
        max_diff_chars: int = MAX_DIFF_CHARS,
        max_concurrency: int = DEFAULT_CONCURRENCY,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            max_commits_per_repository: Cap on in-window commits kept per
                repository (most recent kept), None for no cap
            max_diff_chars: Bound on each diff summary
            max_concurrency: Number of repositories scanned at the same time
            progress_callback: Optional callback for progress events
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if max_commits_per_repository is not None and max_commits_per_repository < 1:
            raise ValueError("max_commits_per_repository must be positive")

        self.max_commits_per_repository = max_commits_per_repository
        self.max_diff_chars = max_diff_chars
        self.max_concurrency = max_concurrency
        self.notifier = ProgressNotifier(progress_callback)

    async def scan(
        self,
        repositories: Sequence[RepositoryRef | str],
        window: ActivityWindow | None = None,
        deep_analysis: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> ScanResult:
        """Scan ``repositories`` for commits inside ``window``.

        Args:
            repositories: Configured repositories, scanned in this order
            window: Time window, defaults to the local calendar day containing now
            deep_analysis: Attach a diff summary to every commit
            cancel_event: When set, no further git work is started and the
                scan raises instead of returning a partial result

        Returns:
            ScanResult with the merged feed and per-repository warnings

        Raises:
            OperationCanceledError: If ``cancel_event`` was set during the scan
        """
        refs = [_as_ref(r) for r in repositories]
        window = window or ActivityWindow.today()

        if _is_canceled(cancel_event):
            raise OperationCanceledError("scan canceled before it started")

        logger.info(
            f"Scanning {len(refs)} repositories from {window.start.isoformat()} "
            f"to {window.end.isoformat()} (deep analysis: {deep_analysis})"
        )
        self.notifier.started(
            f"Scanning {len(refs)} repositories", deep_analysis=deep_analysis
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)
        finished = 0

        async def run(ref: RepositoryRef) -> _RepositoryScan:
            nonlocal finished
            async with semaphore:
                scan = await self._scan_repository(
                    ref, window, deep_analysis, cancel_event
                )
            finished += 1
            self.notifier.progress(
                f"Scanned {ref.display_name}",
                current=finished,
                total=len(refs),
                repository=ref.display_name,
            )
            return scan

        scans = await asyncio.gather(*(run(ref) for ref in refs))

        if _is_canceled(cancel_event):
            logger.info("Scan canceled")
            raise OperationCanceledError("scan canceled")

        commits = merge_commits(scan.commits for scan in scans)
        warnings = [warning for scan in scans for warning in scan.warnings]
        for warning in warnings:
            self.notifier.warning(warning)

        result = ScanResult(
            commits=commits,
            warnings=warnings,
            unreadable=[scan.ref.path for scan in scans if scan.unreadable],
            truncated=[scan.ref.display_name for scan in scans if scan.truncated],
            repository_count=len(refs),
        )

        logger.info(
            f"Scan found {len(commits)} commits in {result.readable_count} of "
            f"{result.repository_count} repositories"
        )
        self.notifier.completed(
            f"Found {len(commits)} commits", unreadable=len(result.unreadable)
        )
        return result

    async def _scan_repository(
        self,
        ref: RepositoryRef,
        window: ActivityWindow,
        deep_analysis: bool,
        cancel_event: asyncio.Event | None,
    ) -> _RepositoryScan:
        scan = _RepositoryScan(ref=ref)
        if _is_canceled(cancel_event):
            return scan

        try:
            repository = await open_repository(ref.path, ref.alias)
            if _is_canceled(cancel_event):
                return scan
            extraction = await extract_commits(
                repository, window, self.max_commits_per_repository
            )
        except RepositoryError as e:
            return self._unreadable(scan, e.reason)
        except (GitCommandError, OSError) as e:
            return self._unreadable(scan, str(e))

        if extraction.truncated:
            scan.truncated = True
            scan.warnings.append(
                f"{ref.display_name}: more than {self.max_commits_per_repository} "
                f"commits in window, only the most recent were kept"
            )

        if deep_analysis:
            scan.commits = await self._attach_diffs(
                repository, extraction.commits, scan, cancel_event
            )
        else:
            scan.commits = extraction.commits
        return scan

    async def _attach_diffs(
        self,
        repository: GitRepository,
        commits: list[Commit],
        scan: _RepositoryScan,
        cancel_event: asyncio.Event | None,
    ) -> list[Commit]:
        enriched = []
        for commit in commits:
            if _is_canceled(cancel_event):
                break
            try:
                diff = await summarize_diff(repository, commit, self.max_diff_chars)
            except DiffUnavailableError as e:
                logger.warning(f"{repository.name}: {e}")
                scan.warnings.append(f"{repository.name}: {e}")
                enriched.append(commit)
                continue
            enriched.append(commit.model_copy(update={"diff": diff}))
        return enriched

    def _unreadable(self, scan: _RepositoryScan, reason: str) -> _RepositoryScan:
        logger.warning(f"Skipping repository {scan.ref.path}: {reason}")
        scan.unreadable = True
        scan.warnings.append(f"repository {scan.ref.path} unreadable: {reason}")
        return scan
