from __future__ import annotations

import argparse
from pathlib import Path
from typing import List

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.commands.common import build_client
from allscreenshots_cli.app.core.errors import ApiError, DisplayError, InputValidationError, NetworkError
from allscreenshots_cli.app.core.formatting import truncate_url
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.progress import spinner
from allscreenshots_cli.app.display.terminal import TerminalImage
from allscreenshots_cli.app.services.models import JobStatus

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp", ".gif"}
THUMBNAIL_SIZES = {"small": (40, 10), "medium": (60, 15)}


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("gallery", help="Browse screenshots as terminal thumbnails")
    parser.add_argument("--dir", type=Path, help="Directory containing images (default: recent API jobs)")
    parser.add_argument("--limit", type=int, default=10, help="Maximum number of images to show (default: 10)")
    parser.add_argument("--size", choices=sorted(THUMBNAIL_SIZES), default="small", help="Thumbnail size")
    parser.set_defaults(handler=execute)


def find_images(directory: Path) -> List[Path]:
    """Image files directly inside ``directory``, newest first."""
    if not directory.is_dir():
        raise InputValidationError(f"Directory not found: {directory}")
    images = [path for path in directory.iterdir() if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES]
    return sorted(images, key=lambda path: path.stat().st_mtime, reverse=True)


def _show(console: Console, thumbnail: TerminalImage, data: bytes, label: str) -> None:
    try:
        thumbnail.display_bytes(data)
    except DisplayError as exc:
        console.print(f"  [yellow]![/] Failed to display {escape(label)}: {escape(str(exc))}")
        return
    console.print(f"  [dim]{escape(label)}[/]")
    console.print()


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    if args.limit < 1:
        raise InputValidationError("--limit must be at least 1")
    width, height = THUMBNAIL_SIZES[args.size]
    thumbnail = TerminalImage(width=width, height=height, console=console)
    if args.dir is not None:
        show_local(console, thumbnail, args.dir, args.limit)
    else:
        await show_recent_jobs(console, thumbnail, config, args.limit)


def show_local(console: Console, thumbnail: TerminalImage, directory: Path, limit: int) -> None:
    images = find_images(directory)

    console.print("[bold underline]Gallery[/]")
    console.print(f"  Source: [cyan]{escape(str(directory))}[/]")
    console.print()

    if not images:
        console.print("[dim]No images found in directory.[/]")
        return

    for path in images[:limit]:
        try:
            data = path.read_bytes()
        except OSError as exc:
            console.print(f"  [yellow]![/] Failed to read {escape(path.name)}: {escape(str(exc))}")
            continue
        _show(console, thumbnail, data, path.name)

    if len(images) > limit:
        console.print(f"[dim]Showing {limit} of {len(images)} images[/]")


async def show_recent_jobs(console: Console, thumbnail: TerminalImage, config: RuntimeConfig, limit: int) -> None:
    async with build_client(config) as client:
        with spinner(console, "Fetching recent screenshots..."):
            jobs = await client.list_jobs()

        console.print("[bold underline]Gallery[/]")
        console.print("  Source: [cyan]Recent API jobs[/]")
        console.print()

        completed = [job for job in jobs if job.status is JobStatus.COMPLETED and job.result_url][:limit]
        if not completed:
            console.print("[dim]No completed screenshots found.[/]")
            return

        for job in completed:
            try:
                with spinner(console, f"Loading {job.id}..."):
                    data = await client.get_job_result(job.id)
            except (ApiError, NetworkError) as exc:
                console.print(f"  [yellow]![/] Failed to load {escape(job.id)}: {escape(str(exc))}")
                continue
            _show(console, thumbnail, data, truncate_url(job.url) if job.url else job.id)

    console.print(f"[dim]Showing {len(completed)} screenshots[/]")
