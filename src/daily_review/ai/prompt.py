"""Review prompt construction.

Pure functions only: the same inputs always produce the same prompt text.
"""

import re
import textwrap
from collections.abc import Sequence
from enum import Enum

from daily_review.models import Commit


class ReviewMode(str, Enum):
    """What the AI is asked to produce."""

    ANALYSIS = "analysis"  # free-form summary
    EXPORT = "export"  # report that follows the user's template


ANALYSIS_INSTRUCTION = (
    "Provide a comprehensive summary, 3 improvements, and 1 key knowledge point. "
    "If code diffs are provided, use them to explain technical details."
)
EXPORT_INSTRUCTION = "Strictly follow the format below:\n\nFormat Template:\n{template}"


def format_log(log: str) -> str:
    return f"- {log.strip()}"


_BACKTICK_RUN = re.compile(r"`+")


def code_fence(text: str) -> str:
    """Backtick fence longer than any backtick run inside ``text`` (at least 3)."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(text)), default=0)
    return "`" * max(3, longest + 1)


def format_commit(commit: Commit) -> str:
    """One bullet per commit, with the diff summary indented below it."""
    text = f"- [{commit.repo_name}] {commit.summary}"
    if commit.diff is not None:
        fence = code_fence(commit.diff)
        block = f"Code Diff Summary:\n{fence}\n{commit.diff}\n{fence}"
        text += "\n" + textwrap.indent(block, "  ")
    return text


def instruction_for(mode: ReviewMode | str, template: str = "") -> str:
    if ReviewMode(mode) is ReviewMode.EXPORT:
        return EXPORT_INSTRUCTION.format(template=template)
    return ANALYSIS_INSTRUCTION


def build_review_prompt(
    logs: Sequence[str],
    commits: Sequence[Commit],
    mode: ReviewMode | str = ReviewMode.ANALYSIS,
    rules: str = "",
    template: str = "",
) -> str:
    """Build the prompt sent to the AI provider.

    Sections always appear in the same order, and empty inputs leave the
    section body empty rather than dropping the section:

        Context:
        Manual Logs:
        Git Commits:
        System Instruction:
        Additional User Rules:

    Args:
        logs: Today's manual log entries
        commits: Aggregated commit feed
        mode: ``analysis`` for a free-form review, ``export`` for a templated report
        rules: Free-text user rules appended at the end
        template: Report template, used verbatim in ``export`` mode only

    Returns:
        The prompt text
    """
    logs_text = "\n".join(format_log(log) for log in logs)
    commits_text = "\n".join(format_commit(commit) for commit in commits)

    return (
        "Context:\n"
        f"Manual Logs:\n{logs_text}\n"
        "\n"
        f"Git Commits:\n{commits_text}\n"
        "\n"
        f"System Instruction:\n{instruction_for(mode, template)}\n"
        "\n"
        f"Additional User Rules:\n{rules.strip()}\n"
    )
