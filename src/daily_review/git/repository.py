"""Locating and opening local git repositories.

All git access in daily-review goes through :func:`run_git`, which runs the
``git`` executable as an asyncio subprocess. Only read commands are issued.
"""

import asyncio
import contextlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from daily_review.errors import (
    GitCommandError,
    RepositoryCorruptError,
    RepositoryNotFoundError,
)
from daily_review.models import RepositoryRef

logger = logging.getLogger(__name__)

GIT_COMMAND_TIMEOUT = 30.0

_GIT_ENV_OVERRIDES = {
    "GIT_PAGER": "cat",
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_OPTIONAL_LOCKS": "0",
    "LC_ALL": "C",
}


async def run_git(
    cwd: str | Path, *args: str, timeout: float = GIT_COMMAND_TIMEOUT
) -> bytes:
    """Run a git command in ``cwd`` and return its raw stdout.

    Args:
        cwd: Directory to run git in (passed with ``-C``)
        *args: git subcommand and arguments
        timeout: Seconds before the process is killed

    Returns:
        Raw stdout bytes

    Raises:
        GitCommandError: If git exits non-zero or times out
        FileNotFoundError: If the git executable is not installed
    """
    env = {**os.environ, **_GIT_ENV_OVERRIDES}
    logger.debug(f"Running git {' '.join(args)} in {cwd}")

    process = await asyncio.create_subprocess_exec(
        "git",
        "-C",
        str(cwd),
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=env,
    )

    try:
        async with asyncio.timeout(timeout):
            stdout, stderr = await process.communicate()
    except TimeoutError:
        await _kill(process)
        raise GitCommandError(args, -1, f"timed out after {timeout:.0f}s") from None
    except asyncio.CancelledError:
        await _kill(process)
        raise

    if process.returncode != 0:
        raise GitCommandError(
            args, process.returncode or -1, stderr.decode("utf-8", errors="replace")
        )
    return stdout


async def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()


@dataclass(frozen=True)
class GitRepository:
    """Read-only handle on an opened repository.

    Attributes:
        path: The path as configured by the user
        identity: Resolved top-level directory, used to recognise the same
            repository configured under different spellings
        name: Display name (alias or last path segment)
        head: Hash of the checked-out commit, None for a repository without commits
    """

    path: str
    identity: str
    name: str
    head: str | None

    @property
    def is_empty(self) -> bool:
        return self.head is None

    async def git(self, *args: str) -> bytes:
        return await run_git(self.identity, *args)


async def open_repository(path: str, alias: str | None = None) -> GitRepository:
    """Open ``path`` as a git working tree.

    Args:
        path: Absolute or relative path to the repository (or any directory inside it)
        alias: Optional display name overriding the last path segment

    Returns:
        GitRepository handle

    Raises:
        RepositoryNotFoundError: If the path is missing or not inside a working tree
        RepositoryCorruptError: If git is unavailable or cannot read the repository
    """
    location = Path(path).expanduser()
    if not location.exists():
        raise RepositoryNotFoundError(path, "path does not exist")
    if not location.is_dir():
        raise RepositoryNotFoundError(path, "not a directory")

    try:
        toplevel = (await run_git(location, "rev-parse", "--show-toplevel")).decode(
            "utf-8", errors="replace"
        ).strip()
    except FileNotFoundError:
        raise RepositoryCorruptError(path, "git executable not found") from None
    except GitCommandError as e:
        if "not a git repository" in e.stderr.lower():
            raise RepositoryNotFoundError(path, "not a git repository") from e
        raise RepositoryCorruptError(path, str(e)) from e

    if not toplevel:
        raise RepositoryNotFoundError(path, "not a git working tree")

    try:
        head_output = await run_git(
            location, "rev-parse", "--verify", "--quiet", "HEAD^{commit}"
        )
        head: str | None = head_output.decode("ascii").strip()
    except GitCommandError as e:
        # --verify --quiet exits 1 silently when HEAD is unborn
        if e.returncode == 1 and not e.stderr.strip():
            head = None
        else:
            raise RepositoryCorruptError(path, str(e)) from e

    repository = GitRepository(
        path=path,
        identity=str(Path(toplevel).resolve()),
        name=RepositoryRef(path=path, alias=alias).display_name,
        head=head,
    )
    logger.debug(
        f"Opened repository {repository.name} at {repository.identity} "
        f"(head: {repository.head or 'none'})"
    )
    return repository
