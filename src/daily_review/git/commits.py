"""Extracting in-window commits from an opened repository."""

import logging
from dataclasses import dataclass, field

from daily_review.git.repository import GitRepository
from daily_review.models import ActivityWindow, Commit

logger = logging.getLogger(__name__)

# Unit separator between fields, record separator between commits
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = "%H%x1f%P%x1f%ct%x1f%an%x1f%B%x1e"


@dataclass
class CommitExtraction:
    """Commits found in a window, most recent first."""

    commits: list[Commit] = field(default_factory=list)
    truncated: bool = False


def sort_commits(commits: list[Commit]) -> list[Commit]:
    """Most recent first; equal timestamps ordered by hash."""
    return sorted(commits, key=lambda c: (-c.timestamp, c.hash))


def parse_log_output(output: str, repository: GitRepository) -> list[Commit]:
    """Parse ``git log`` output produced with the extractor's format string."""
    commits = []
    for record in output.split(_RECORD_SEP):
        record = record.lstrip("\n")
        if not record.strip():
            continue

        parts = record.split(_FIELD_SEP, 4)
        if len(parts) != 5:
            logger.warning(f"Skipping unparseable log record in {repository.name}")
            continue

        commit_hash, parents, timestamp, author, message = parts
        try:
            committed = int(timestamp)
        except ValueError:
            logger.warning(
                f"Skipping commit {commit_hash[:7]} in {repository.name}: "
                f"bad timestamp {timestamp!r}"
            )
            continue

        commits.append(
            Commit(
                hash=commit_hash,
                message=message.strip(),
                author=author,
                timestamp=committed,
                repo_name=repository.name,
                repo_identity=repository.identity,
                parents=tuple(parents.split()),
            )
        )
    return commits


async def extract_commits(
    repository: GitRepository,
    window: ActivityWindow,
    max_commits: int | None = None,
) -> CommitExtraction:
    """Collect commits reachable from HEAD whose timestamp falls inside ``window``.

    Args:
        repository: Opened repository
        window: Half-open interval; the start is included, the end excluded
        max_commits: Keep at most this many of the most recent commits

    Returns:
        CommitExtraction with commits ordered most recent first

    Raises:
        GitCommandError: If git cannot walk the history
    """
    if repository.is_empty or window.is_empty:
        return CommitExtraction()

    # Window filtered below; --since stops the walk at the first older commit
    output = await repository.git(
        "log", "HEAD", "--no-color", f"--format={_LOG_FORMAT}", "--"
    )

    commits = [
        commit
        for commit in parse_log_output(output.decode("utf-8", errors="replace"), repository)
        if window.contains(commit.timestamp)
    ]
    commits = sort_commits(commits)

    truncated = max_commits is not None and len(commits) > max_commits
    if truncated:
        logger.info(
            f"{repository.name}: {len(commits)} commits in window, keeping {max_commits} most recent"
        )
        commits = commits[:max_commits]

    logger.debug(f"{repository.name}: extracted {len(commits)} commits")
    return CommitExtraction(commits=commits, truncated=truncated)
