from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.commands.common import (
    add_capture_defaults,
    add_display_flags,
    build_client,
    build_materializer,
    resolve_device,
    resolve_format,
    should_display,
)
from allscreenshots_cli.app.core.errors import InputValidationError
from allscreenshots_cli.app.core.inputs import normalize_url, parse_duration, parse_format
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.progress import WAITING, spinner
from allscreenshots_cli.app.display.render import render_job_created
from allscreenshots_cli.app.services.job_poller import DEFAULT_POLL_INTERVAL, JobStatusPoller
from allscreenshots_cli.app.services.models import Job, ScreenshotRequest


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("async", help="Take an async screenshot with job tracking")
    parser.add_argument("url", help="URL to capture")
    parser.add_argument("-o", "--output", type=Path, help="Output file path")
    add_capture_defaults(parser)
    poll = parser.add_mutually_exclusive_group()
    poll.add_argument("--poll", dest="poll", action="store_true", default=True, help="Poll for completion (default)")
    poll.add_argument("--no-poll", dest="poll", action="store_false", help="Don't poll, just create the job")
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help="Polling interval in seconds (default: 2)",
    )
    parser.add_argument("--timeout", help="Give up waiting after this long (e.g. 5m); waits forever when omitted")
    add_display_flags(parser)
    parser.set_defaults(handler=execute)


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    url = normalize_url(args.url)
    if args.poll_interval < 0:
        raise InputValidationError("--poll-interval must not be negative")
    timeout = parse_duration(args.timeout) if args.timeout else None
    request = ScreenshotRequest(
        url=url,
        device=resolve_device(args, config),
        format=parse_format(resolve_format(args, config)),
        full_page=True if args.full_page else None,
    )
    materializer = build_materializer(console, config)

    async with build_client(config) as client:
        poller = JobStatusPoller(client, interval=args.poll_interval, timeout=timeout)

        if not args.poll:
            with spinner(console, f"Starting async capture for {url}..."):
                job = await poller.submit(request)
            render_job_created(console, job)
            return

        with spinner(console, f"Starting async capture for {url}...") as status:

            def _created(job: Job) -> None:
                status.update(f"Job created: {escape(job.id)} - {WAITING}")

            def _progress(job: Job) -> None:
                status.update(f"Status: {job.status.label}...")

            data = await poller.submit_and_wait(request, on_created=_created, on_status=_progress)

    if args.output is not None:
        await materializer.save(args.output, data)
        console.print(f"[green]Saved to:[/] {escape(str(args.output))}")

    if should_display(args.display, args.no_display, args.output, config.defaults.display):
        console.print()
        if not materializer.show(data):
            console.print("[yellow]![/] Could not display the image in this terminal")
        console.print()

    console.print("[bold green]Screenshot captured![/]")
