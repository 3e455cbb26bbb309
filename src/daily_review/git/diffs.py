"""Bounded diff summaries for single commits ("deep analysis").

Truncation happens here and only here, so every consumer of
``Commit.diff`` sees the same bounded value.
"""

import logging
import re

from daily_review.errors import DiffUnavailableError, GitCommandError
from daily_review.git.repository import GitRepository
from daily_review.models import Commit

logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 3000
TRUNCATION_MARKER = "\n... (truncated)"
INITIAL_COMMIT_MARKER = "(initial commit)"
BINARY_FILE_MARKER = "binary file changed"
NO_CHANGES_MARKER = "(no content changes)"

_DIFF_FLAGS = ("--no-color", "--no-ext-diff", "--no-textconv")
_FILE_BOUNDARY = re.compile(rb"(?m)^(?=diff --git )")
_BINARY_PATCH = re.compile(rb"(?m)^(Binary files .* differ|GIT binary patch)$")


def truncate_diff(text: str, max_chars: int = MAX_DIFF_CHARS) -> str:
    """Cut ``text`` to exactly ``max_chars`` characters plus a marker when too long."""
    if max_chars < 0:
        raise ValueError("max_chars must not be negative")
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def _render_section(section: bytes) -> str:
    header, _, body = section.partition(b"\n")
    header_text = header.decode("utf-8", errors="replace")
    if _BINARY_PATCH.search(body):
        return f"{header_text}\n{BINARY_FILE_MARKER}"
    try:
        return section.decode("utf-8").rstrip("\n")
    except UnicodeDecodeError:
        return f"{header_text}\n{BINARY_FILE_MARKER}"


def render_patch(raw: bytes) -> str:
    """Turn raw ``git diff`` output into text, one section per file.

    Binary or non UTF-8 file sections are replaced by ``BINARY_FILE_MARKER``.
    """
    sections = [
        _render_section(section)
        for section in _FILE_BOUNDARY.split(raw)
        if section.strip()
    ]
    return "\n".join(sections) if sections else NO_CHANGES_MARKER


async def summarize_diff(
    repository: GitRepository, commit: Commit, max_chars: int = MAX_DIFF_CHARS
) -> str:
    """Summarize what ``commit`` changed.

    Args:
        repository: Repository the commit belongs to
        commit: Commit to summarize
        max_chars: Bound on the returned text, excluding the truncation marker

    Returns:
        Unified diff against the first parent, or the initial-commit marker
        followed by the introduced files for a root commit

    Raises:
        DiffUnavailableError: If git cannot produce the diff
    """
    try:
        if commit.is_root:
            raw = await repository.git(
                "show", "--format=", "--patch", *_DIFF_FLAGS, commit.hash, "--"
            )
        else:
            raw = await repository.git(
                "diff", *_DIFF_FLAGS, commit.parents[0], commit.hash, "--"
            )
    except GitCommandError as e:
        raise DiffUnavailableError(commit.hash, str(e)) from e
    except FileNotFoundError:
        raise DiffUnavailableError(commit.hash, "git executable not found") from None

    summary = render_patch(raw)
    if commit.is_root:
        summary = f"{INITIAL_COMMIT_MARKER}\n{summary}"

    logger.debug(
        f"{repository.name}: diff for {commit.short_hash} is {len(summary)} chars"
    )
    return truncate_diff(summary, max_chars)
