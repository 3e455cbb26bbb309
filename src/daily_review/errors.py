"""Exception hierarchy for daily-review.

Repository and diff errors are raised by the git layer and converted into
scan warnings by the aggregator; they never escape a scan. AI failures are
not exceptions at all, see ``daily_review.ai.models``.
"""


class DailyReviewError(Exception):
    """Base exception for daily-review errors."""


class ConfigurationError(DailyReviewError):
    """Raised when configuration values are invalid."""


class GitCommandError(DailyReviewError):
    """Raised when a git invocation exits with a non-zero status."""

    def __init__(self, args: tuple[str, ...], returncode: int, stderr: str) -> None:
        command = " ".join(("git", *args))
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"{command}: {detail}")
        self.command_args = args
        self.returncode = returncode
        self.stderr = stderr


class RepositoryError(DailyReviewError):
    """Base class for a repository that cannot be used."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class RepositoryNotFoundError(RepositoryError):
    """Raised when a path does not exist or is not a git working tree."""


class RepositoryCorruptError(RepositoryError):
    """Raised when git cannot read an existing repository."""


class NoteStoreError(DailyReviewError):
    """Raised when the notes file cannot be read and must not be overwritten."""


class DiffUnavailableError(DailyReviewError):
    """Raised when the diff of a single commit cannot be produced."""

    def __init__(self, commit_hash: str, reason: str) -> None:
        super().__init__(f"diff unavailable for {commit_hash[:7]}: {reason}")
        self.commit_hash = commit_hash
        self.reason = reason


class OperationCanceledError(DailyReviewError):
    """Raised when a caller cancels an in-flight scan."""
