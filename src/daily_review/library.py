"""Library API for daily-review.

The two operations exposed to front ends:

    from daily_review import scan, review, AiSettings, ReviewMode

    result = scan(["~/src/api", "~/src/web"], deep_analysis=True)
    for warning in result.warnings:
        print(warning)

    outcome = review(
        ReviewMode.ANALYSIS,
        logs=["Paired on the billing migration"],
        commits=result.commits,
        rules="Keep it short.",
        template="",
        settings=AiSettings(provider="anthropic", model="claude-3-5-sonnet-latest", api_key="..."),
    )
    print(outcome.text if outcome.ok else outcome.describe())

Both have async forms (``scan_activity`` / ``review_activity``) for callers
that already run an event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from daily_review.aggregator import DEFAULT_MAX_COMMITS, ActivityAggregator
from daily_review.ai.gateway import AiGateway
from daily_review.ai.models import AiResult, AiSettings
from daily_review.ai.prompt import ReviewMode, build_review_prompt
from daily_review.git.diffs import MAX_DIFF_CHARS
from daily_review.models import ActivityWindow, Commit, RepositoryRef, ScanResult
from daily_review.progress import ProgressCallback

logger = logging.getLogger(__name__)


async def scan_activity(
    repositories: Sequence[RepositoryRef | str],
    deep_analysis: bool = False,
    window: ActivityWindow | None = None,
    *,
    max_commits_per_repository: int | None = DEFAULT_MAX_COMMITS,
    max_diff_chars: int = MAX_DIFF_CHARS,
    progress_callback: ProgressCallback | None = None,
    cancel_event: asyncio.Event | None = None,
) -> ScanResult:
    """Collect the merged commit feed for ``repositories``.

    Args:
        repositories: Paths or RepositoryRefs to scan
        deep_analysis: Attach a bounded diff summary to each commit
        window: Time window (defaults to today, local time)
        max_commits_per_repository: Cap on commits kept per repository
        max_diff_chars: Bound on each diff summary
        progress_callback: Optional progress callback
        cancel_event: Set to cancel the scan

    Returns:
        ScanResult; unreadable repositories appear in ``warnings``

    Raises:
        OperationCanceledError: If the scan was canceled
    """
    aggregator = ActivityAggregator(
        max_commits_per_repository=max_commits_per_repository,
        max_diff_chars=max_diff_chars,
        progress_callback=progress_callback,
    )
    return await aggregator.scan(
        repositories,
        window=window,
        deep_analysis=deep_analysis,
        cancel_event=cancel_event,
    )


def scan(
    repositories: Sequence[RepositoryRef | str],
    deep_analysis: bool = False,
    window: ActivityWindow | None = None,
    **kwargs: object,
) -> ScanResult:
    """Synchronous version of scan_activity for non-async contexts."""
    return asyncio.run(
        scan_activity(repositories, deep_analysis, window, **kwargs)  # type: ignore[arg-type]
    )


async def review_activity(
    mode: ReviewMode | str,
    logs: Sequence[str],
    commits: Sequence[Commit],
    rules: str,
    template: str,
    settings: AiSettings,
    *,
    gateway: AiGateway | None = None,
    cancel_event: asyncio.Event | None = None,
) -> AiResult:
    """Build the review prompt and send it to the configured provider.

    Args:
        mode: ``analysis`` or ``export``
        logs: Today's manual log entries
        commits: Commit feed from a scan
        rules: Free-text user rules
        template: Report template (used in export mode)
        settings: Provider, model, API key and optional base URL
        gateway: Gateway to use (a default one is created if None)
        cancel_event: Set to cancel the AI call

    Returns:
        AiSuccess or AiFailure; this function does not raise for AI errors
    """
    mode = ReviewMode(mode)
    prompt = build_review_prompt(logs, commits, mode, rules, template)
    logger.info(
        f"Running {mode.value} review over {len(logs)} notes and {len(commits)} commits"
    )
    gateway = gateway or AiGateway()
    return await gateway.complete(settings.to_request(prompt), cancel_event)


def review(
    mode: ReviewMode | str,
    logs: Sequence[str],
    commits: Sequence[Commit],
    rules: str,
    template: str,
    settings: AiSettings,
    *,
    gateway: AiGateway | None = None,
) -> AiResult:
    """Synchronous version of review_activity for non-async contexts."""
    return asyncio.run(
        review_activity(mode, logs, commits, rules, template, settings, gateway=gateway)
    )
