"""Tests for the library operations."""

import json

import httpx
import pytest

from daily_review.ai.gateway import AiGateway
from daily_review.ai.models import AiFailureKind, AiSettings, AiSuccess
from daily_review.library import review, review_activity, scan, scan_activity
from daily_review.models import Commit
from tests.fixtures.git_repos import FIXED_DAY, local_time, requires_git

SETTINGS = AiSettings(provider="openai-compatible", model="gpt-4o", api_key="sk-test")


def capturing_gateway(prompts: list[str], reply: str = "Summary") -> AiGateway:
    def handler(request):
        prompts.append(json.loads(request.content)["messages"][0]["content"])
        return httpx.Response(200, json={"choices": [{"message": {"content": reply}}]})

    return AiGateway(transport=httpx.MockTransport(handler))


class TestReview:
    """review / review_activity."""

    @pytest.mark.asyncio
    async def test_sends_built_prompt(self):
        """Test that the prompt carries notes, commits and rules."""
        prompts = []
        commit = Commit(
            hash="a" * 40,
            message="Fix rounding",
            author="Ada",
            timestamp=1710403200,
            repo_name="api",
            repo_identity="/work/api",
        )

        result = await review_activity(
            "analysis",
            ["Paired on billing"],
            [commit],
            "Be brief.",
            "",
            SETTINGS,
            gateway=capturing_gateway(prompts),
        )

        assert result == AiSuccess(text="Summary")
        (prompt,) = prompts
        assert "- Paired on billing" in prompt
        assert "- [api] Fix rounding" in prompt
        assert prompt.endswith("Additional User Rules:\nBe brief.\n")

    def test_sync_review(self):
        """Test the synchronous wrapper."""
        prompts = []

        result = review(
            "export", [], [], "", "TEMPLATE", SETTINGS, gateway=capturing_gateway(prompts)
        )

        assert result.ok
        assert "Format Template:\nTEMPLATE" in prompts[0]

    @pytest.mark.asyncio
    async def test_invalid_mode(self):
        """Test that an unknown mode is rejected before any request."""
        with pytest.raises(ValueError):
            await review_activity("poem", [], [], "", "", SETTINGS)

    @pytest.mark.asyncio
    async def test_failure_is_returned(self):
        """Test that provider failures come back as values."""

        def handler(request):
            return httpx.Response(500, json={"error": {"message": "overloaded"}})

        result = await review_activity(
            "analysis",
            [],
            [],
            "",
            "",
            SETTINGS,
            gateway=AiGateway(transport=httpx.MockTransport(handler)),
        )

        assert result.kind == AiFailureKind.PROVIDER_ERROR
        assert result.message == "overloaded"


class TestScan:
    """scan / scan_activity."""

    @pytest.mark.asyncio
    async def test_missing_repository_is_a_warning(self, tmp_path, fixed_window):
        """Test that scan_activity reports unreadable paths without raising."""
        result = await scan_activity([str(tmp_path / "gone")], window=fixed_window)

        assert result.commits == []
        assert len(result.warnings) == 1

    @requires_git
    @pytest.mark.git
    def test_sync_scan(self, make_repo, fixed_window):
        """Test the synchronous wrapper end to end."""
        builder = make_repo("api")
        head = builder.commit("work", local_time(FIXED_DAY, 11), {"a.txt": "a\n"})

        result = scan([str(builder.path)], deep_analysis=True, window=fixed_window)

        assert [c.hash for c in result.commits] == [head]
        assert result.commits[0].diff is not None
