"""Read-only access to local git repositories.

The walker opens repositories, the extractor lists in-window commits and the
diff summarizer produces bounded per-commit diffs for deep analysis.
"""

from .commits import CommitExtraction, extract_commits, sort_commits
from .diffs import (
    BINARY_FILE_MARKER,
    INITIAL_COMMIT_MARKER,
    MAX_DIFF_CHARS,
    TRUNCATION_MARKER,
    summarize_diff,
    truncate_diff,
)
from .repository import GitRepository, open_repository, run_git

__all__ = [
    "GitRepository",
    "open_repository",
    "run_git",
    "CommitExtraction",
    "extract_commits",
    "sort_commits",
    "summarize_diff",
    "truncate_diff",
    "MAX_DIFF_CHARS",
    "TRUNCATION_MARKER",
    "INITIAL_COMMIT_MARKER",
    "BINARY_FILE_MARKER",
]
