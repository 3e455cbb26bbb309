"""Tests for bounded diff summaries."""

import pytest

from daily_review.errors import DiffUnavailableError
from daily_review.git.commits import extract_commits
from daily_review.git.diffs import (
    BINARY_FILE_MARKER,
    INITIAL_COMMIT_MARKER,
    NO_CHANGES_MARKER,
    TRUNCATION_MARKER,
    render_patch,
    summarize_diff,
    truncate_diff,
)
from daily_review.git.repository import open_repository
from tests.fixtures.git_repos import FIXED_DAY, local_time, requires_git


class TestTruncateDiff:
    """Bounding diff text."""

    def test_short_text_unchanged(self):
        """Test that text within the bound is returned as is."""
        assert truncate_diff("abc", 3) == "abc"

    def test_long_text_cut_at_bound(self):
        """Test that long text keeps exactly max_chars characters plus the marker."""
        result = truncate_diff("x" * 5000, 3000)

        assert result == "x" * 3000 + TRUNCATION_MARKER
        assert result.endswith("... (truncated)")

    def test_negative_bound_rejected(self):
        """Test that a negative bound is an error."""
        with pytest.raises(ValueError):
            truncate_diff("abc", -1)


class TestRenderPatch:
    """Rendering raw git diff output."""

    def test_text_sections_kept(self):
        """Test that text diffs pass through."""
        raw = (
            b"diff --git a/a.py b/a.py\n"
            b"--- a/a.py\n+++ b/a.py\n@@ -1 +1 @@\n-x = 1\n+x = 2\n"
        )

        rendered = render_patch(raw)

        assert rendered.startswith("diff --git a/a.py b/a.py")
        assert "+x = 2" in rendered

    def test_binary_section_replaced(self):
        """Test that binary sections become the sentinel but text sections stay."""
        raw = (
            b"diff --git a/logo.png b/logo.png\n"
            b"index 123..456 100644\n"
            b"Binary files a/logo.png and b/logo.png differ\n"
            b"diff --git a/a.py b/a.py\n"
            b"@@ -1 +1 @@\n-x = 1\n+x = 2\n"
        )

        rendered = render_patch(raw)

        assert rendered == (
            "diff --git a/logo.png b/logo.png\n"
            f"{BINARY_FILE_MARKER}\n"
            "diff --git a/a.py b/a.py\n"
            "@@ -1 +1 @@\n-x = 1\n+x = 2"
        )

    def test_invalid_utf8_section_replaced(self):
        """Test that a section that is not UTF-8 is treated as binary."""
        raw = b"diff --git a/data.txt b/data.txt\n@@ -0,0 +1 @@\n+\xff\xfe\x00\n"

        assert render_patch(raw) == f"diff --git a/data.txt b/data.txt\n{BINARY_FILE_MARKER}"

    def test_empty_output(self):
        """Test that an empty diff has an explicit marker."""
        assert render_patch(b"") == NO_CHANGES_MARKER


@requires_git
@pytest.mark.git
class TestSummarizeDiff:
    """Diff summaries against real repositories."""

    async def _commits(self, builder, window):
        repository = await open_repository(str(builder.path))
        extraction = await extract_commits(repository, window)
        return repository, {c.summary: c for c in extraction.commits}

    @pytest.mark.asyncio
    async def test_root_commit(self, make_repo, fixed_window):
        """Test that a root commit is marked and lists the introduced files."""
        builder = make_repo("api")
        builder.commit("Initial", local_time(FIXED_DAY, 9), {"README.md": "hello\n"})
        repository, commits = await self._commits(builder, fixed_window)

        diff = await summarize_diff(repository, commits["Initial"])

        assert diff.startswith(INITIAL_COMMIT_MARKER + "\n")
        assert "README.md" in diff
        assert "+hello" in diff

    @pytest.mark.asyncio
    async def test_change_against_parent(self, make_repo, fixed_window):
        """Test that a regular commit is diffed against its parent."""
        builder = make_repo("api")
        builder.commit("Initial", local_time(FIXED_DAY, 9), {"app.py": "x = 1\n"})
        builder.commit("Bump", local_time(FIXED_DAY, 10), {"app.py": "x = 2\n"})
        repository, commits = await self._commits(builder, fixed_window)

        diff = await summarize_diff(repository, commits["Bump"])

        assert not diff.startswith(INITIAL_COMMIT_MARKER)
        assert "-x = 1" in diff
        assert "+x = 2" in diff

    @pytest.mark.asyncio
    async def test_binary_file(self, make_repo, fixed_window):
        """Test that binary content is replaced by the sentinel."""
        builder = make_repo("assets")
        builder.commit("Initial", local_time(FIXED_DAY, 9), {"notes.txt": "a\n"})
        builder.commit(
            "Add logo",
            local_time(FIXED_DAY, 10),
            {"logo.bin": bytes(range(256)) * 4},
        )
        repository, commits = await self._commits(builder, fixed_window)

        diff = await summarize_diff(repository, commits["Add logo"])

        assert BINARY_FILE_MARKER in diff
        assert "logo.bin" in diff

    @pytest.mark.asyncio
    async def test_empty_commit(self, make_repo, fixed_window):
        """Test that a commit without content changes has an explicit marker."""
        builder = make_repo("api")
        builder.commit("Initial", local_time(FIXED_DAY, 9), {"a.txt": "a\n"})
        builder.commit("Nothing", local_time(FIXED_DAY, 10))
        repository, commits = await self._commits(builder, fixed_window)

        assert await summarize_diff(repository, commits["Nothing"]) == NO_CHANGES_MARKER

    @pytest.mark.asyncio
    async def test_bounded(self, make_repo, fixed_window):
        """Test that large diffs are cut at the bound."""
        builder = make_repo("api")
        builder.commit("Initial", local_time(FIXED_DAY, 9), {"a.txt": "a\n"})
        builder.commit(
            "Big", local_time(FIXED_DAY, 10), {"big.txt": "line\n" * 2000}
        )
        repository, commits = await self._commits(builder, fixed_window)

        diff = await summarize_diff(repository, commits["Big"], max_chars=500)

        assert len(diff) == 500 + len(TRUNCATION_MARKER)
        assert diff.endswith(TRUNCATION_MARKER)

    @pytest.mark.asyncio
    async def test_unknown_parent(self, make_repo, fixed_window):
        """Test that a diff git cannot produce raises DiffUnavailableError."""
        builder = make_repo("api")
        builder.commit("Initial", local_time(FIXED_DAY, 9), {"a.txt": "a\n"})
        repository, commits = await self._commits(builder, fixed_window)
        broken = commits["Initial"].model_copy(update={"parents": ("0" * 40,)})

        with pytest.raises(DiffUnavailableError) as exc_info:
            await summarize_diff(repository, broken)

        assert exc_info.value.commit_hash == broken.hash
