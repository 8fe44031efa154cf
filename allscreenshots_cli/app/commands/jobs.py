from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.commands.common import add_display_flags, build_client, build_materializer, should_display
from allscreenshots_cli.app.core.errors import JobNotCompletedError
from allscreenshots_cli.app.core.formatting import format_file_size
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.progress import DOWNLOADING, spinner
from allscreenshots_cli.app.display.render import render_job_details, render_job_list
from allscreenshots_cli.app.services.models import JobStatus


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("jobs", help="List and manage screenshot jobs")
    jobs = parser.add_subparsers(dest="jobs_command", metavar="COMMAND", required=True)

    list_parser = jobs.add_parser("list", help="List recent jobs")
    list_parser.set_defaults(handler=list_jobs)

    get_parser = jobs.add_parser("get", help="Get job status")
    get_parser.add_argument("id", help="Job ID")
    get_parser.set_defaults(handler=get_job)

    cancel_parser = jobs.add_parser("cancel", help="Cancel a job")
    cancel_parser.add_argument("id", help="Job ID")
    cancel_parser.set_defaults(handler=cancel_job)

    result_parser = jobs.add_parser("result", help="Download job result")
    result_parser.add_argument("id", help="Job ID")
    result_parser.add_argument("-o", "--output", type=Path, help="Output file path")
    add_display_flags(result_parser)
    result_parser.set_defaults(handler=get_result)


async def list_jobs(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    async with build_client(config) as client:
        with spinner(console, "Fetching jobs..."):
            jobs = await client.list_jobs()
    render_job_list(console, jobs)


async def get_job(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    async with build_client(config) as client:
        with spinner(console, "Fetching job..."):
            job = await client.get_job(args.id)
    render_job_details(console, job)


async def cancel_job(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    async with build_client(config) as client:
        with spinner(console, "Cancelling job..."):
            job = await client.cancel_job(args.id)

    if job.status is JobStatus.CANCELLED:
        console.print(f"[green]✓[/] Job {escape(args.id)} cancelled")
    elif job.status.is_terminal:
        console.print(
            f"[yellow]![/] Job {escape(args.id)} is already {job.status.label} (finished before cancellation)"
        )
    else:
        console.print(f"[yellow]![/] Cancellation requested; job {escape(args.id)} is {job.status.label}")


async def get_result(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    materializer = build_materializer(console, config)
    async with build_client(config) as client:
        with spinner(console, "Checking job status...") as status:
            job = await client.get_job(args.id)
            if job.status is not JobStatus.COMPLETED:
                raise JobNotCompletedError(args.id, job.status.label)
            status.update(DOWNLOADING)
            data = await client.get_job_result(args.id)

    console.print(f"[green]✓[/] Downloaded {format_file_size(len(data))}")

    if args.output is not None:
        await materializer.save(args.output, data)
        console.print(f"  Saved to: [cyan]{escape(str(args.output))}[/]")

    if should_display(args.display, args.no_display, args.output, config.defaults.display):
        console.print()
        if not materializer.show(data):
            console.print("[yellow]![/] Could not display the image in this terminal")
        console.print()
