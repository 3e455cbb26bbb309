"""Command-line interface for daily-review."""

import asyncio
import contextlib
import logging
import signal
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from pathlib import Path
from typing import TypeVar

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from daily_review import __version__
from daily_review.ai.gateway import AiGateway
from daily_review.ai.models import AiFailureKind, AiResult
from daily_review.ai.prompt import ReviewMode
from daily_review.config import AppConfig, Config
from daily_review.errors import (
    ConfigurationError,
    NoteStoreError,
    OperationCanceledError,
)
from daily_review.library import review_activity, scan_activity
from daily_review.models import ActivityWindow, RepositoryRef, ScanResult
from daily_review.notes import NOTE_KINDS, NoteStore

app = typer.Typer(
    name="daily-review",
    help="Collect today's notes and git commits and turn them into an AI review or report",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging on stderr"
    ),
) -> None:
    """Daily Review - a daily review helper for developers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _parse_day(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def _run_cancellable(operation: Callable[[asyncio.Event], Awaitable[T]]) -> T:
    """Run ``operation`` with a cancel event that Ctrl+C sets."""

    async def runner() -> T:
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def on_interrupt() -> None:
            console.print("\n[yellow]Cancelling... Please wait for cleanup.[/yellow]")
            cancel_event.set()

        installed = False
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(signal.SIGINT, on_interrupt)
            installed = True
        try:
            return await operation(cancel_event)
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)

    return asyncio.run(runner())


def _display_commits(result: ScanResult) -> None:
    if not result.commits:
        console.print("[yellow]No commits found in this window[/yellow]")
        return

    deep = any(commit.diff is not None for commit in result.commits)
    table = Table(
        title=f"Commits ({len(result.commits)})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Time", style="cyan", no_wrap=True)
    table.add_column("Repository", style="green")
    table.add_column("Hash", style="dim", no_wrap=True)
    table.add_column("Message")
    table.add_column("Author", style="blue")
    if deep:
        table.add_column("Diff", justify="right", style="yellow")

    for commit in result.commits:
        row = [
            commit.committed_at.strftime("%H:%M"),
            commit.repo_name,
            commit.short_hash,
            commit.summary,
            commit.author,
        ]
        if deep:
            row.append(f"{len(commit.diff)} chars" if commit.diff is not None else "-")
        table.add_row(*row)

    console.print(table)


def _display_warnings(result: ScanResult) -> None:
    if result.unreadable:
        console.print(
            f"[yellow]{len(result.unreadable)} of {result.repository_count} "
            f"repositories unreadable[/yellow]"
        )
    for warning in result.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")


@app.command()
def version() -> None:
    """Show the version and exit."""
    print(f"daily-review {__version__}")


@app.command()
def add(
    content: str = typer.Argument(..., help="The content of the note"),
    kind: str = typer.Option(
        "note", "--kind", "-k", help=f"Kind of entry ({', '.join(NOTE_KINDS)})"
    ),
) -> None:
    """Add a new note for today."""
    try:
        entry = NoteStore().add(content, kind)
    except (ValueError, NoteStoreError) as e:
        print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    print(f"[green]✓[/green] Note {entry.id} added: {entry.content}")


@app.command("list")
def list_notes(
    day: str | None = typer.Option(
        None, "--date", help="Day to list (YYYY-MM-DD), defaults to today"
    ),
) -> None:
    """List today's notes."""
    entries = NoteStore().list_for_day(_parse_day(day))
    if not entries:
        print("[yellow]No notes for this day[/yellow]")
        return

    table = Table(title="Notes", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Time", style="green", no_wrap=True)
    table.add_column("Kind", style="blue")
    table.add_column("Content")
    for entry in entries:
        table.add_row(
            str(entry.id),
            entry.timestamp.astimezone().strftime("%H:%M"),
            entry.kind,
            entry.content,
        )
    console.print(table)


@app.command()
def delete(entry_id: int = typer.Argument(..., help="ID of the note to delete")) -> None:
    """Delete a note by ID."""
    try:
        deleted = NoteStore().delete(entry_id)
    except NoteStoreError as e:
        print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    if deleted:
        print(f"[green]✓[/green] Deleted note {entry_id}")
    else:
        print(f"[red]Note {entry_id} not found[/red]")
        raise typer.Exit(1)


def _display_config(config: Config, app_config: AppConfig) -> None:
    info = config.get_config_info()
    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Config File", info["config_file"])
    table.add_row("API Key", "✓ Yes" if info["has_api_key"] else "✗ No")
    table.add_row("Provider", info["provider"])
    table.add_row("Model", info["model"])
    table.add_row("Base URL", info["base_url"] or "(provider default)")
    table.add_row("Deep Analysis", "on" if info["deep_analysis"] else "off")
    for ref in app_config.repositories:
        table.add_row("Repository", f"{ref.display_name}  [dim]{ref.path}[/dim]")
    print(table)


@app.command("config")
def configure(
    api_key: str | None = typer.Option(None, "--api-key", help="Set the AI provider API key"),
    provider: str | None = typer.Option(
        None, "--provider", help="AI provider (openai-compatible, anthropic, gemini)"
    ),
    model: str | None = typer.Option(None, "--model", help="Model name"),
    base_url: str | None = typer.Option(
        None, "--base-url", help="Override the provider base URL (empty string resets it)"
    ),
    add_repo: str | None = typer.Option(None, "--add-repo", help="Add a git repository path"),
    alias: str | None = typer.Option(None, "--alias", help="Display name for --add-repo"),
    remove_repo: str | None = typer.Option(
        None, "--remove-repo", help="Remove a git repository path"
    ),
    deep_analysis: bool | None = typer.Option(
        None,
        "--deep-analysis/--no-deep-analysis",
        help="Include code diffs when scanning repositories",
    ),
    rules_file: Path | None = typer.Option(
        None, "--rules-file", help="Read custom rules from a file"
    ),
    template_file: Path | None = typer.Option(
        None, "--template-file", help="Read the report template from a file"
    ),
) -> None:
    """Show the configuration, or update it with the given options."""
    if alias is not None and add_repo is None:
        raise typer.BadParameter("--alias can only be used together with --add-repo")

    config = Config()
    changes: dict[str, object] = {}

    if api_key is not None:
        changes["api_key"] = api_key
    if provider is not None:
        changes["provider"] = provider
    if model is not None:
        changes["model"] = model
    if base_url is not None:
        changes["base_url"] = base_url or None
    if deep_analysis is not None:
        changes["deep_analysis"] = deep_analysis
    try:
        if rules_file is not None:
            changes["custom_rules"] = rules_file.read_text(encoding="utf-8")
        if template_file is not None:
            changes["report_template"] = template_file.read_text(encoding="utf-8")
    except OSError as e:
        print(f"[red]Error: cannot read {e.filename}: {e.strerror}[/red]")
        raise typer.Exit(1)

    try:
        if changes:
            config.update(**changes)
            print(f"[green]✓[/green] Updated {', '.join(sorted(changes))}")
    except ConfigurationError as e:
        print(f"[red]Error: invalid configuration[/red]\n{escape(str(e))}")
        raise typer.Exit(1)

    if add_repo is not None:
        if config.add_repository(add_repo, alias):
            print(f"[green]✓[/green] Added repository {add_repo}")
        else:
            print(f"[yellow]Repository already configured: {add_repo}[/yellow]")
    if remove_repo is not None:
        if config.remove_repository(remove_repo):
            print(f"[green]✓[/green] Removed repository {remove_repo}")
        else:
            print(f"[yellow]No repository configured at {remove_repo}[/yellow]")

    _display_config(config, config.load())


def _window_for(day: date | None) -> ActivityWindow:
    return ActivityWindow.for_date(day) if day else ActivityWindow.today()


def _require_repositories(app_config: AppConfig) -> list[RepositoryRef]:
    repositories = app_config.repositories
    if not repositories:
        print(
            "[yellow]No repositories configured. Add one with "
            "[bold]daily-review config --add-repo PATH[/bold][/yellow]"
        )
    return repositories


@app.command()
def sync(
    deep: bool = typer.Option(
        False, "--deep", help="Include code diffs regardless of the configuration"
    ),
    day: str | None = typer.Option(
        None, "--date", help="Day to scan (YYYY-MM-DD), defaults to today"
    ),
    max_commits: int = typer.Option(
        300, "--max-commits", help="Maximum commits kept per repository"
    ),
) -> None:
    """Scan the configured git repositories for the day's commits."""
    if max_commits < 1:
        raise typer.BadParameter("--max-commits must be positive")

    app_config = Config().load()
    window = _window_for(_parse_day(day))
    use_deep = deep or app_config.deep_analysis

    repositories = _require_repositories(app_config)
    if not repositories:
        return

    print(
        f"[blue]Syncing {len(repositories)} repositories "
        f"(deep analysis: {'on' if use_deep else 'off'})[/blue]"
    )

    try:
        result = _run_cancellable(
            lambda cancel_event: scan_activity(
                repositories,
                use_deep,
                window,
                max_commits_per_repository=max_commits,
                cancel_event=cancel_event,
            )
        )
    except OperationCanceledError:
        print("[yellow]Sync cancelled by user[/yellow]")
        raise typer.Exit(130)

    _display_commits(result)
    _display_warnings(result)


@app.command()
def review(
    export: bool = typer.Option(
        False, "--export", help="Write a report following the template instead of a review"
    ),
    day: str | None = typer.Option(
        None, "--date", help="Day to review (YYYY-MM-DD), defaults to today"
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the result to a file instead of the terminal"
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        help="API key for this run (or set DAILY_REVIEW_API_KEY env var)",
        envvar="DAILY_REVIEW_API_KEY",
    ),
    timeout: float = typer.Option(60.0, "--timeout", help="AI request timeout in seconds"),
) -> None:
    """Generate an AI review (default) or a templated report (--export)."""
    app_config = Config().load()
    key = api_key or app_config.api_key
    if not key:
        print(
            "[red]Error: no API key configured.[/red] Run "
            "[bold]daily-review config --api-key KEY[/bold] or set DAILY_REVIEW_API_KEY"
        )
        raise typer.Exit(1)
    if timeout <= 0:
        raise typer.BadParameter("--timeout must be positive")

    selected_day = _parse_day(day)
    window = _window_for(selected_day)
    notes = NoteStore().list_for_day(window.start.date())
    mode = ReviewMode.EXPORT if export else ReviewMode.ANALYSIS
    settings = app_config.ai_settings(api_key=key)

    print(
        f"[blue]Generating AI {'report' if export else 'review'} with "
        f"{settings.provider.value} / {settings.model}[/blue]"
    )

    async def run(cancel_event: asyncio.Event) -> tuple[ScanResult, AiResult]:
        scan_result = await scan_activity(
            app_config.repositories,
            app_config.deep_analysis,
            window,
            cancel_event=cancel_event,
        )
        outcome = await review_activity(
            mode,
            [note.content for note in notes],
            scan_result.commits,
            app_config.custom_rules,
            app_config.report_template,
            settings,
            gateway=AiGateway(timeout=timeout),
            cancel_event=cancel_event,
        )
        return scan_result, outcome

    try:
        scan_result, outcome = _run_cancellable(run)
    except OperationCanceledError:
        print("[yellow]Review cancelled by user[/yellow]")
        raise typer.Exit(130)

    _display_warnings(scan_result)

    if not outcome.ok:
        print(f"[red]✗ {outcome.describe()}[/red]")
        raise typer.Exit(130 if outcome.kind is AiFailureKind.CANCELED else 1)

    if output:
        output.write_text(outcome.text + "\n", encoding="utf-8")
        print(f"[green]✓[/green] Saved to {output}")
        return

    title = "📝 Daily Report" if export else "🤖 Daily Review"
    console.print(Panel(outcome.text, title=title, border_style="magenta", padding=(1, 2)))
