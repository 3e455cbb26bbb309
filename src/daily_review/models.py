"""Pydantic models for repository activity data."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator


class Commit(BaseModel):
    """One commit in one local repository."""

    model_config = ConfigDict(frozen=True)

    hash: str
    message: str
    author: str
    timestamp: int  # committer time, seconds since epoch (UTC)
    repo_name: str
    repo_identity: str
    parents: tuple[str, ...] = ()
    diff: str | None = None

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def committed_at(self) -> datetime:
        """Commit time in the local timezone."""
        return datetime.fromtimestamp(self.timestamp).astimezone()


class RepositoryRef(BaseModel):
    """A configured repository path with an optional display alias."""

    model_config = ConfigDict(frozen=True)

    path: str
    alias: str | None = None

    @property
    def display_name(self) -> str:
        if self.alias:
            return self.alias
        name = Path(self.path).expanduser().name
        if not name:
            name = Path(self.path).expanduser().resolve().name
        return name or "Unknown"


class ActivityWindow(BaseModel):
    """Half-open time interval ``[start, end)`` bounding commit extraction."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Interpret naive datetimes as local time."""
        if v.tzinfo is None:
            return v.astimezone()
        return v

    @classmethod
    def for_date(cls, day: date) -> ActivityWindow:
        """The local calendar day ``day``."""
        start = datetime.combine(day, time.min).astimezone()
        end = datetime.combine(day + timedelta(days=1), time.min).astimezone()
        return cls(start=start, end=end)

    @classmethod
    def today(cls) -> ActivityWindow:
        """The local calendar day containing now."""
        return cls.for_date(datetime.now().astimezone().date())

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def contains(self, timestamp: int | float) -> bool:
        return self.start.timestamp() <= timestamp < self.end.timestamp()


class ScanResult(BaseModel):
    """Merged commit feed plus the non-fatal problems met while scanning."""

    model_config = ConfigDict(frozen=True)

    commits: list[Commit]
    warnings: list[str] = []
    unreadable: list[str] = []
    truncated: list[str] = []
    repository_count: int = 0

    @property
    def readable_count(self) -> int:
        return self.repository_count - len(self.unreadable)

    @property
    def repositories(self) -> list[str]:
        """Display names of repositories that contributed commits, in feed order."""
        names: list[str] = []
        for commit in self.commits:
            if commit.repo_name not in names:
                names.append(commit.repo_name)
        return names
