from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.commands.common import (
    add_capture_defaults,
    build_client,
    build_materializer,
    resolve_device,
    resolve_format,
)
from allscreenshots_cli.app.core.errors import FileWriteError, InputValidationError
from allscreenshots_cli.app.core.formatting import format_interval
from allscreenshots_cli.app.core.inputs import normalize_url, parse_duration, parse_format
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.render import render_watch_attempt
from allscreenshots_cli.app.services.models import WatchSession, WatchTemplate
from allscreenshots_cli.app.services.watch import WatchAttempt, WatchLoop

WATCH_DISPLAY_SIZE = (60, 20)


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("watch", help="Watch mode - re-capture at intervals")
    parser.add_argument("url", help="URL to watch")
    parser.add_argument("-i", "--interval", default="5s", help='Interval between captures (e.g. "5s", "1m")')
    parser.add_argument("-o", "--output-dir", type=Path, help="Output directory for saved screenshots")
    add_capture_defaults(parser, formats="png, jpeg, webp")
    parser.add_argument("--max-captures", type=int, default=0, help="Maximum number of captures (0 = unlimited)")
    parser.add_argument("--no-display", action="store_true", help="Don't display in terminal")
    parser.set_defaults(handler=execute)


def build_session(args: argparse.Namespace, config: RuntimeConfig) -> WatchSession:
    url = normalize_url(args.url)
    interval = parse_duration(args.interval)
    fmt = parse_format(resolve_format(args, config), allow_pdf=False)
    if args.max_captures < 0:
        raise InputValidationError("--max-captures must be 0 (unlimited) or a positive number")
    template = WatchTemplate(
        url=url,
        device=resolve_device(args, config),
        format=fmt,
        full_page=args.full_page,
    )
    return WatchSession(
        template=template,
        interval=interval,
        max_captures=args.max_captures,
        output_dir=args.output_dir,
        display=not args.no_display and config.defaults.display is not False,
    )


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    session = build_session(args, config)
    if session.output_dir is not None:
        try:
            session.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileWriteError(f"Failed to create directory {session.output_dir}: {exc}") from exc

    console.print("[bold cyan]Watch Mode[/]")
    console.print(f"  URL: {escape(session.template.url)}")
    console.print(f"  Interval: {format_interval(session.interval)}")
    if session.output_dir is not None:
        console.print(f"  Output: {escape(str(session.output_dir))}")
    if session.bounded:
        console.print(f"  Max captures: {session.max_captures}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop[/]")
    console.print()

    width, height = WATCH_DISPLAY_SIZE
    materializer = build_materializer(console, config, width=width, height=height)

    def _attempt(iteration: int) -> None:
        console.print(f"[dim]Capture #{iteration}: {escape(session.template.url)}...[/]")

    def _captured(attempt: WatchAttempt) -> None:
        render_watch_attempt(console, attempt)

    async with build_client(config) as client:
        loop = WatchLoop(client, materializer)
        report = await loop.run(session, on_attempt=_attempt, on_capture=_captured)

    if session.bounded and report.attempts >= session.max_captures:
        console.print()
        console.print(f"[green]✓[/] Maximum captures ({session.max_captures}) reached")
