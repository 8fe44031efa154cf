from __future__ import annotations

import argparse
from pathlib import Path
from typing import List

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.commands.common import add_capture_defaults, build_client, resolve_device, resolve_format
from allscreenshots_cli.app.core.errors import BatchFailedError, InputValidationError
from allscreenshots_cli.app.core.inputs import normalize_url, parse_format, read_urls_from_file, validate_batch_size
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.progress import BatchProgress
from allscreenshots_cli.app.display.render import render_batch_item, render_batch_summary
from allscreenshots_cli.app.services.batch import DEFAULT_POLL_INTERVAL, BatchItemResult, BatchOrchestrator
from allscreenshots_cli.app.services.materializer import ResultMaterializer
from allscreenshots_cli.app.services.models import BulkDefaults, BulkJob


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("batch", help="Capture multiple URLs (bulk operation)")
    parser.add_argument("urls", nargs="*", metavar="URL", help="URLs to capture")
    parser.add_argument("-f", "--file", type=Path, help="Read URLs from file (one per line)")
    parser.add_argument("-o", "--output-dir", type=Path, default=None, help="Output directory (default: ./screenshots)")
    add_capture_defaults(parser)
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help="Polling interval in seconds (default: 2)",
    )
    parser.add_argument("--concurrency", type=int, default=1, help="Parallel result downloads (default: 1)")
    parser.add_argument("--no-progress", dest="progress", action="store_false", help="Hide the progress bar")
    parser.set_defaults(handler=execute)


def collect_urls(args: argparse.Namespace) -> List[str]:
    urls = list(args.urls or [])
    if args.file is not None:
        urls.extend(read_urls_from_file(args.file))
    validate_batch_size(urls)
    return [normalize_url(url) for url in urls]


class _BatchView:
    """Console output for the three phases: submit, poll, save."""

    def __init__(self, console: Console, total: int, show_progress: bool):
        self.console = console
        self.status = console.status("Creating batch job...", spinner="dots")
        self.progress = BatchProgress(console, total, enabled=show_progress)
        self._saving = False

    def start(self) -> None:
        self.status.start()

    def created(self, job: BulkJob) -> None:
        self.status.stop()
        self.console.print(f"  Job ID: [dim]{escape(job.id)}[/]")
        self.progress.start()

    def polled(self, completed: int) -> None:
        self.progress.update(completed)

    def item(self, result: BatchItemResult) -> None:
        if not self._saving:
            self._saving = True
            self.progress.finish("Download complete!")
            self.progress.stop()
            self.console.print()
            self.console.print("[cyan]Saving screenshots...[/]")
        render_batch_item(self.console, result)

    def close(self) -> None:
        self.status.stop()
        self.progress.stop()


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    urls = collect_urls(args)
    fmt_name = resolve_format(args, config).lower()
    fmt = parse_format(fmt_name)
    if args.concurrency < 1:
        raise InputValidationError("--concurrency must be at least 1")
    if args.poll_interval < 0:
        raise InputValidationError("--poll-interval must not be negative")
    output_dir = args.output_dir or Path(config.defaults.output_dir or "./screenshots")
    defaults = BulkDefaults(
        device=resolve_device(args, config),
        format=fmt,
        full_page=True if args.full_page else None,
    )

    console.print(f"[bold cyan]Batch capture:[/] {len(urls)} URLs")

    view = _BatchView(console, len(urls), args.progress)
    async with build_client(config) as client:
        orchestrator = BatchOrchestrator(
            client,
            ResultMaterializer(),
            interval=args.poll_interval,
            concurrency=args.concurrency,
        )
        view.start()
        failure = None
        try:
            summary = await orchestrator.run(
                urls,
                output_dir=output_dir,
                defaults=defaults,
                extension=fmt_name,
                progress=view.polled,
                on_created=view.created,
                on_item=view.item,
            )
        except BatchFailedError as exc:
            summary, failure = exc.summary, exc
        finally:
            view.close()

    render_batch_summary(console, summary)
    if failure is not None:
        raise failure
