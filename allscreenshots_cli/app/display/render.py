"""Console rendering for jobs, schedules, batch and watch results, and errors."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from allscreenshots_cli.app.core.errors import (
    ApiError,
    AuthenticationError,
    BatchFailedError,
    CliError,
    ConfigError,
    DisplayError,
    FileReadError,
    FileWriteError,
    InputFileNotFoundError,
    InputValidationError,
    InvalidUrlError,
    JobCancelledError,
    JobFailedError,
    NetworkError,
    NoApiKeyError,
    NotFoundError,
    OperationCancelledError,
    PollTimeoutError,
    RateLimitError,
    RequestValidationError,
)
from allscreenshots_cli.app.core.formatting import format_duration_ms, format_file_size
from allscreenshots_cli.app.services.batch import BatchItemResult, BatchSummary
from allscreenshots_cli.app.services.models import ComposeResult, Job, JobStatus, Schedule, ScheduleHistory
from allscreenshots_cli.app.services.watch import WatchAttempt

API_KEYS_URL = "https://dashboard.allscreenshots.com/api-keys"
BILLING_URL = "https://dashboard.allscreenshots.com/billing"

STATUS_ICONS = {
    JobStatus.COMPLETED: "[green]✓[/]",
    JobStatus.FAILED: "[red]✗[/]",
    JobStatus.CANCELLED: "[yellow]⊘[/]",
    JobStatus.PROCESSING: "[cyan]⟳[/]",
    JobStatus.QUEUED: "[dim]○[/]",
}

STATUS_COLORS = {
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
    JobStatus.CANCELLED: "yellow",
    JobStatus.PROCESSING: "cyan",
    JobStatus.QUEUED: "white",
}


def error_lines(error: Exception) -> Tuple[str, List[str]]:
    """Marker line plus detail lines for an error."""
    message = escape(str(error))
    if isinstance(error, NoApiKeyError):
        return "No API key found!", [
            "[yellow]You can provide your API key in one of these ways:[/]",
            "  1. Set the ALLSCREENSHOTS_API_KEY environment variable",
            "  2. Run: allscreenshots config add-authtoken <your-key>",
            "",
            "[dim]Get your API key at:[/]",
            f"  [cyan underline]{API_KEYS_URL}[/]",
        ]
    if isinstance(error, AuthenticationError):
        return "Authentication failed!", [
            "[yellow]Your API key appears to be invalid.[/]",
            f"  {escape(error.message)}",
            "",
            "[dim]Check your key at:[/]",
            f"  [cyan underline]{API_KEYS_URL}[/]",
        ]
    if isinstance(error, RateLimitError):
        return "Rate limit exceeded!", [
            "[yellow]You've made too many requests. Please wait a moment and try again.[/]",
            "",
            "[dim]Upgrade your plan for higher limits:[/]",
            f"  [cyan underline]{BILLING_URL}[/]",
        ]
    if isinstance(error, RequestValidationError):
        return "Invalid request!", [f"[yellow]{escape(error.message)}[/]"]
    if isinstance(error, NotFoundError):
        return "Resource not found!", [f"[yellow]{escape(error.message)}[/]"]
    if isinstance(error, ApiError):
        status = f" (HTTP {error.status})" if error.status else ""
        return f"API Error{status}", [escape(error.message)]
    if isinstance(error, NetworkError):
        if error.is_timeout:
            return "Request timed out!", [
                "[yellow]The server took too long to respond.[/]",
                "  [dim]Try again later.[/]",
            ]
        if error.is_connect:
            return "Connection failed!", [
                "[yellow]Could not connect to the AllScreenshots API.[/]",
                "  [dim]Check your internet connection and try again.[/]",
            ]
        return "Network error!", [f"[yellow]{message}[/]"]
    if isinstance(error, InvalidUrlError):
        return "Invalid URL!", [
            f"[yellow]'{escape(error.url)}' is not a valid URL.[/]",
            "  [dim]URLs should start with http:// or https://[/]",
        ]
    if isinstance(error, InputFileNotFoundError):
        return "File not found!", [f"[yellow]Could not find: {escape(error.path)}[/]"]
    if isinstance(error, FileReadError):
        return "Failed to read file!", [f"[yellow]{message}[/]"]
    if isinstance(error, FileWriteError):
        return "Failed to write file!", [f"[yellow]{message}[/]"]
    if isinstance(error, DisplayError):
        return "Failed to display image!", [
            f"[yellow]{message}[/]",
            "  [dim]Try using --no-display to skip terminal display[/]",
        ]
    if isinstance(error, ConfigError):
        return "Configuration error!", [f"[yellow]{message}[/]"]
    if isinstance(error, JobFailedError):
        return "Job failed!", [f"[yellow]{escape(error.error_message)}[/]"]
    if isinstance(error, JobCancelledError):
        return "Job cancelled!", [f"[yellow]{message}[/]"]
    if isinstance(error, (PollTimeoutError, OperationCancelledError)):
        return "Stopped waiting!", [
            f"[yellow]{message}[/]",
            f"  [dim]Run `allscreenshots jobs get {escape(error.job_id)}` to check on it later[/]",
        ]
    if isinstance(error, BatchFailedError):
        return "Batch failed!", [f"[yellow]{message}[/]"]
    if isinstance(error, InputValidationError):
        return "Invalid input!", [f"[yellow]{message}[/]"]
    return "Error!", [f"[yellow]{message}[/]"]


def render_error(console: Console, error: CliError) -> None:
    marker, details = error_lines(error)
    console.print()
    console.print(f"[bold red]{marker}[/]")
    if details:
        console.print()
        for line in details:
            console.print(line)
    console.print()


def render_capture_summary(
    console: Console,
    url: str,
    dimensions: Optional[Tuple[int, int]],
    size: int,
    output: Optional[Path],
    *,
    elapsed_ms: Optional[int] = None,
) -> None:
    console.print("[bold green]Screenshot captured![/]")
    console.print(f"  URL: [dim]{escape(url)}[/]")
    if dimensions:
        console.print(f"  Size: {dimensions[0]}x{dimensions[1]}")
    console.print(f"  File size: {format_file_size(size)}")
    if elapsed_ms is not None:
        console.print(f"  Time: {format_duration_ms(elapsed_ms)}")
    if output:
        console.print(f"  Saved to: [cyan]{escape(str(output))}[/]")


def render_job_created(console: Console, job: Job) -> None:
    console.print()
    console.print("[green]Job created successfully![/]")
    console.print(f"  Job ID: [cyan]{escape(job.id)}[/]")
    if job.status_url:
        console.print(f"  Status URL: [dim]{escape(job.status_url)}[/]")
    console.print()
    console.print(f"Use `allscreenshots jobs get {escape(job.id)}` to check status")


def render_job_details(console: Console, job: Job) -> None:
    color = STATUS_COLORS[job.status]
    console.print("[bold underline]Job Details[/]")
    console.print()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("ID", f"[cyan]{escape(job.id)}[/]")
    table.add_row("Status", f"[bold {color}]{job.status.label}[/]")
    for label, value in (
        ("URL", job.url),
        ("Created", job.created_at),
        ("Started", job.started_at),
        ("Completed", job.completed_at),
        ("Expires", job.expires_at),
    ):
        if value:
            table.add_row(label, escape(value))
    if job.result_url:
        table.add_row("Result URL", f"[cyan]{escape(job.result_url)}[/]")
    if job.error_code:
        table.add_row("Error Code", f"[red]{escape(job.error_code)}[/]")
    if job.error_message:
        table.add_row("Error", f"[red]{escape(job.error_message)}[/]")
    console.print(table)

    if job.status is JobStatus.COMPLETED:
        console.print()
        console.print(f"[dim]Tip: Run `allscreenshots jobs result {escape(job.id)}` to download[/]")


def render_job_list(console: Console, jobs: Iterable[Job]) -> None:
    jobs = list(jobs)
    if not jobs:
        console.print("[dim]No jobs found.[/]")
        return

    console.print("[bold underline]Recent Jobs[/]")
    console.print()
    for job in jobs:
        console.print(f"{STATUS_ICONS[job.status]} [cyan]{escape(job.id)}[/] ([bold]{job.status.label}[/])")
        if job.url:
            console.print(f"    URL: [dim]{escape(job.url)}[/]")
        if job.created_at:
            console.print(f"    Created: [dim]{escape(job.created_at)}[/]")
        if job.completed_at:
            console.print(f"    Completed: [dim]{escape(job.completed_at)}[/]")
        if job.status is JobStatus.FAILED and job.error_message:
            console.print(f"    Error: [red]{escape(job.error_message)}[/]")
        if job.result_url:
            console.print(f"    Result: [dim]{escape(job.result_url)}[/]")
        console.print()


def render_batch_item(console: Console, result: BatchItemResult) -> None:
    if result.success:
        console.print(f"  [green]✓[/] {escape(str(result.path))}")
    else:
        console.print(f"  [red]✗[/] {escape(result.url)} - {escape(result.error or '')}")


def render_batch_summary(console: Console, summary: BatchSummary) -> None:
    rule = "═" * 50
    console.print()
    console.print(f"[dim]{rule}[/]")
    console.print("[bold]Batch Summary[/]")
    console.print(f"  Total: {summary.total}")
    console.print(f"  [green]Successful:[/] {summary.succeeded}")
    if summary.failed:
        console.print(f"  [red]Failed:[/] {summary.failed}")
    console.print(f"  Output: [cyan]{escape(str(summary.output_dir))}[/]")
    console.print(f"[dim]{rule}[/]")


def render_watch_attempt(console: Console, attempt: WatchAttempt) -> None:
    if attempt.outcome is None:
        console.print(f"  [red]✗[/] Capture failed: {escape(str(attempt.error))}")
        return

    outcome = attempt.outcome
    if outcome.path is not None:
        head = f"  [green]✓[/] Saved: {escape(outcome.path.name)}"
    else:
        head = "  [green]✓[/] Captured"
    if outcome.dimensions:
        width, height = outcome.dimensions
        console.print(f"{head} ({width}x{height}, {format_file_size(outcome.size)})")
    else:
        console.print(f"{head} ({format_file_size(outcome.size)})")


SCHEDULE_COLORS = {"ACTIVE": "green", "PAUSED": "yellow"}


def _executions(schedule: Schedule) -> str:
    return (
        f"{schedule.execution_count} total ([green]{schedule.success_count}[/] success,"
        f" [red]{schedule.failure_count}[/] failed)"
    )


def render_schedule_list(console: Console, schedules: Iterable[Schedule]) -> None:
    schedules = list(schedules)
    if not schedules:
        console.print("[dim]No schedules found.[/]")
        return

    console.print("[bold underline]Schedules[/]")
    console.print()
    for schedule in schedules:
        color = SCHEDULE_COLORS.get(schedule.status, "white")
        console.print(f"[{color}]•[/] [bold]{escape(schedule.name)}[/] ([dim]{escape(schedule.id)}[/])")
        console.print(f"    URL: {escape(schedule.url)}")
        console.print(f"    Schedule: {escape(schedule.schedule)} ({escape(schedule.timezone or 'UTC')})")
        if schedule.schedule_description:
            console.print(f"    Description: [dim]{escape(schedule.schedule_description)}[/]")
        console.print(f"    Status: [{color}]{escape(schedule.status)}[/]")
        if schedule.next_execution_at:
            console.print(f"    Next run: [cyan]{escape(schedule.next_execution_at)}[/]")
        console.print(f"    Executions: {_executions(schedule)}")
        console.print()


def render_schedule_details(console: Console, schedule: Schedule) -> None:
    console.print("[bold underline]Schedule Details[/]")
    console.print()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("ID", f"[cyan]{escape(schedule.id)}[/]")
    table.add_row("Name", f"[bold]{escape(schedule.name)}[/]")
    table.add_row("URL", escape(schedule.url))
    table.add_row("Schedule", escape(schedule.schedule))
    if schedule.schedule_description:
        table.add_row("Description", escape(schedule.schedule_description))
    table.add_row("Timezone", escape(schedule.timezone or "UTC"))
    table.add_row("Status", f"[{SCHEDULE_COLORS.get(schedule.status, 'white')}]{escape(schedule.status)}[/]")
    if schedule.retention_days:
        table.add_row("Retention", f"{schedule.retention_days} days")
    if schedule.last_executed_at:
        table.add_row("Last executed", escape(schedule.last_executed_at))
    if schedule.next_execution_at:
        table.add_row("Next execution", f"[cyan]{escape(schedule.next_execution_at)}[/]")
    table.add_row("Executions", _executions(schedule))
    if schedule.created_at:
        table.add_row("Created", f"[dim]{escape(schedule.created_at)}[/]")
    console.print(table)


def render_schedule_history(console: Console, history: ScheduleHistory) -> None:
    console.print(f"[bold underline]Execution History[/] ([dim]{history.total_executions} total[/])")
    console.print()
    if not history.executions:
        console.print("[dim]No executions yet.[/]")
        return

    icons = {"COMPLETED": "[green]✓[/]", "FAILED": "[red]✗[/]"}
    for execution in history.executions:
        icon = icons.get(execution.status, "[dim]•[/]")
        console.print(f"{icon} {escape(execution.executed_at)} - [bold]{escape(execution.status)}[/]")
        if execution.result_url:
            console.print(f"    Result: [dim]{escape(execution.result_url)}[/]")
        if execution.error_message:
            console.print(f"    Error: [red]{escape(execution.error_message)}[/]")
        if execution.render_time_ms is not None:
            console.print(f"    Render time: [dim]{format_duration_ms(execution.render_time_ms)}[/]")


def render_compose_result(console: Console, result: ComposeResult, layout: str, output: Optional[Path]) -> None:
    console.print("[bold green]Composition complete![/]")
    console.print(f"  Layout: {layout}")
    if result.width and result.height:
        console.print(f"  Size: {result.width}x{result.height}")
    if result.file_size is not None:
        console.print(f"  File size: {format_file_size(result.file_size)}")
    if result.render_time_ms is not None:
        console.print(f"  Render time: {format_duration_ms(result.render_time_ms)}")
    if result.url:
        console.print(f"  Result URL: [cyan]{escape(result.url)}[/]")
        if output is not None:
            console.print(f"  To download, use: curl -o {escape(str(output))} '{escape(result.url)}'")
    if result.storage_url:
        console.print(f"  Storage URL: [cyan]{escape(result.storage_url)}[/]")
