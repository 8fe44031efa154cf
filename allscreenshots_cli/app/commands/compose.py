from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console

from allscreenshots_cli.app.commands.common import build_client, resolve_device, resolve_format
from allscreenshots_cli.app.core.inputs import (
    MAX_COMPOSE_URLS,
    normalize_url,
    parse_background,
    parse_format,
    parse_layout,
    validate_compose_size,
    validate_non_negative,
    validate_range,
)
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.progress import spinner
from allscreenshots_cli.app.display.render import render_compose_result
from allscreenshots_cli.app.services.models import CaptureItem, ComposeOutput, ComposeRequest


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("compose", help="Compose several captures into one image")
    parser.add_argument("urls", nargs="+", metavar="URL", help="URLs to compose (2-20)")
    parser.add_argument("-o", "--output", type=Path, help="Where to download the composed image")
    parser.add_argument(
        "--layout",
        default="auto",
        help="Layout: grid, horizontal, vertical, masonry, mondrian, partitioning, auto (default: auto)",
    )
    parser.add_argument("--columns", type=int, help="Number of columns (grid layout)")
    parser.add_argument("--spacing", type=int, help="Spacing between images in pixels")
    parser.add_argument("--padding", type=int, help="Padding around the canvas in pixels")
    parser.add_argument("--background", help='Background colour (#RRGGBB or "transparent")')
    parser.add_argument("--format", default=None, help="Output format: png, jpeg, webp (default: png)")
    parser.add_argument("--quality", type=int, help="Image quality (1-100)")
    parser.add_argument("-d", "--device", help="Device preset for every capture")
    parser.set_defaults(handler=execute)


def build_request(args: argparse.Namespace, config: RuntimeConfig) -> ComposeRequest:
    validate_compose_size(args.urls)
    urls = [normalize_url(url) for url in args.urls]
    device = resolve_device(args, config)
    output = ComposeOutput(
        layout=parse_layout(args.layout),
        format=parse_format(resolve_format(args, config), allow_pdf=False),
        columns=validate_range("--columns", args.columns, 1, MAX_COMPOSE_URLS) if args.columns is not None else None,
        spacing=validate_non_negative("--spacing", args.spacing) if args.spacing is not None else None,
        padding=validate_non_negative("--padding", args.padding) if args.padding is not None else None,
        background=parse_background(args.background) if args.background else None,
        quality=validate_range("--quality", args.quality, 1, 100) if args.quality is not None else None,
    )
    return ComposeRequest(captures=[CaptureItem(url=url, device=device) for url in urls], output=output)


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    request = build_request(args, config)
    console.print(f"[bold cyan]Composing[/] {len(request.captures)} screenshots")

    async with build_client(config) as client:
        with spinner(console, "Composing screenshots..."):
            result = await client.compose(request)

    render_compose_result(console, result, request.output.layout.value, args.output)
