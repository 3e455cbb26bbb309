"""Shared pytest fixtures."""

import pytest

from daily_review.models import ActivityWindow
from tests.fixtures.git_repos import FIXED_DAY, GitRepoBuilder


@pytest.fixture
def make_repo(tmp_path):
    """Factory fixture: ``make_repo("name")`` returns a GitRepoBuilder."""

    def factory(name: str) -> GitRepoBuilder:
        return GitRepoBuilder(tmp_path / name)

    return factory


@pytest.fixture
def fixed_window() -> ActivityWindow:
    return ActivityWindow.for_date(FIXED_DAY)


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point the config directory at a temporary location."""
    home = tmp_path / "daily-review-home"
    monkeypatch.setenv("DAILY_REVIEW_HOME", str(home))
    return home
