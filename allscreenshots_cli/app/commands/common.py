from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from rich.console import Console

from allscreenshots_cli.app.core.errors import NoApiKeyError
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.terminal import TerminalImage
from allscreenshots_cli.app.services.api_client import ScreenshotsClient
from allscreenshots_cli.app.services.materializer import ResultMaterializer


def build_client(config: RuntimeConfig) -> ScreenshotsClient:
    if not config.api_key:
        raise NoApiKeyError()
    return ScreenshotsClient(config.api_key, base_url=config.base_url, timeout=config.request_timeout)


def build_materializer(
    console: Console,
    config: RuntimeConfig,
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> ResultMaterializer:
    display = TerminalImage(
        width=width or config.display.width or 80,
        height=height or config.display.height or 24,
        console=console,
    )
    return ResultMaterializer(display)


def should_display(display: bool, no_display: bool, output: Optional[Path], default: Optional[bool] = True) -> bool:
    """Flags win; otherwise show when nothing is saved, unless the config turns display off."""
    if no_display:
        return False
    if display:
        return True
    return output is None and default is not False


def add_display_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--display", action="store_true", help="Display image in terminal")
    parser.add_argument("--no-display", action="store_true", help="Don't display image in terminal")


def add_capture_defaults(parser: argparse.ArgumentParser, *, formats: str = "png, jpeg, webp, pdf") -> None:
    parser.add_argument("-d", "--device", help='Device preset (e.g. "Desktop HD", "iPhone 14")')
    parser.add_argument("--format", default=None, help=f"Image format: {formats} (default: png)")
    parser.add_argument("--full-page", action="store_true", help="Capture the full page")


def resolve_device(args: argparse.Namespace, config: RuntimeConfig) -> Optional[str]:
    return args.device or config.defaults.device


def resolve_format(args: argparse.Namespace, config: RuntimeConfig) -> str:
    return args.format or config.defaults.format or "png"
