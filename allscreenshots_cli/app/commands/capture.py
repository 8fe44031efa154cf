from __future__ import annotations

import argparse
import time
from pathlib import Path

from rich.console import Console

from allscreenshots_cli.app.commands.common import (
    add_capture_defaults,
    add_display_flags,
    build_client,
    build_materializer,
    resolve_device,
    resolve_format,
    should_display,
)
from allscreenshots_cli.app.core.inputs import normalize_url, parse_block_level, parse_format, parse_wait_until
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.progress import spinner
from allscreenshots_cli.app.display.render import render_capture_summary
from allscreenshots_cli.app.services.models import ScreenshotRequest, Viewport


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("capture", help="Take a synchronous screenshot")
    parser.add_argument("url", help="URL to capture")
    parser.add_argument("-o", "--output", type=Path, help="Output file path")
    add_capture_defaults(parser)
    parser.add_argument("--width", type=int, help="Viewport width in pixels")
    parser.add_argument("--height", type=int, help="Viewport height in pixels")
    parser.add_argument("--quality", type=int, help="Image quality (1-100, for jpeg/webp)")
    parser.add_argument("--delay", type=int, help="Delay before capture in milliseconds")
    parser.add_argument("--wait-for", help="CSS selector to wait for before capture")
    parser.add_argument("--wait-until", help="Wait until: load, domcontentloaded, networkidle, commit")
    parser.add_argument("--dark-mode", action="store_true", help="Enable dark mode")
    parser.add_argument("--block-ads", action="store_true", help="Block advertisements")
    parser.add_argument("--block-cookies", action="store_true", help="Block cookie banners")
    parser.add_argument("--block-level", help="Block level: none, light, normal, pro, pro_plus, ultimate")
    parser.add_argument("--selector", help="CSS selector to capture a specific element")
    parser.add_argument("--custom-css", help="Custom CSS to inject")
    add_display_flags(parser)
    parser.set_defaults(handler=execute)


def build_request(args: argparse.Namespace, config: RuntimeConfig) -> ScreenshotRequest:
    url = normalize_url(args.url)
    viewport = None
    if getattr(args, "width", None) or getattr(args, "height", None):
        viewport = Viewport(width=args.width, height=args.height)

    wait_until = getattr(args, "wait_until", None)
    block_level = getattr(args, "block_level", None)
    return ScreenshotRequest(
        url=url,
        device=resolve_device(args, config),
        viewport=viewport,
        format=parse_format(resolve_format(args, config)),
        full_page=True if args.full_page else None,
        quality=getattr(args, "quality", None),
        delay=getattr(args, "delay", None),
        wait_for=getattr(args, "wait_for", None),
        wait_until=parse_wait_until(wait_until) if wait_until else None,
        dark_mode=True if getattr(args, "dark_mode", False) else None,
        block_ads=True if getattr(args, "block_ads", False) else None,
        block_cookie_banners=True if getattr(args, "block_cookies", False) else None,
        block_level=parse_block_level(block_level) if block_level else None,
        selector=getattr(args, "selector", None),
        custom_css=getattr(args, "custom_css", None),
    )


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    request = build_request(args, config)
    materializer = build_materializer(console, config)

    async with build_client(config) as client:
        started = time.monotonic()
        with spinner(console, f"Capturing {request.url}..."):
            data = await client.screenshot(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)

    dimensions = materializer.dimensions(data)
    output = None
    if args.output is not None:
        output = await materializer.save(args.output, data)

    if should_display(args.display, args.no_display, args.output, config.defaults.display):
        console.print()
        if not materializer.show(data):
            console.print("[yellow]![/] Could not display the image in this terminal")
        console.print()

    render_capture_summary(console, request.url, dimensions, len(data), output, elapsed_ms=elapsed_ms)
