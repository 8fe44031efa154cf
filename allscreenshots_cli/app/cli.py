from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from allscreenshots_cli.app.commands import (
    async_capture,
    batch,
    capture,
    completions,
    compose,
    config,
    gallery,
    jobs,
    schedule,
    usage,
    watch,
)
from allscreenshots_cli.app.core.errors import CliError, ConfigError
from allscreenshots_cli.app.core.formatting import DEVICE_PRESETS
from allscreenshots_cli.app.core.logger import configure_logging
from allscreenshots_cli.app.core.settings import Config, RuntimeConfig
from allscreenshots_cli.app.display.render import render_error

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

EPILOG = """examples:
  Quick screenshot (displays in terminal):
    allscreenshots https://www.google.com

  Save to file:
    allscreenshots https://github.com -o github.png

  Mobile screenshot:
    allscreenshots https://example.com --device "iPhone 14" --full-page

  Batch capture from file:
    allscreenshots batch -f urls.txt -o ./screenshots/

  Set up authentication:
    allscreenshots config add-authtoken <your-api-key>
"""

_OPTIONS_WITH_VALUES = {"-k", "--api-key"}
COMMAND_NAMES = (
    "capture",
    "async",
    "batch",
    "compose",
    "schedule",
    "usage",
    "gallery",
    "watch",
    "jobs",
    "config",
    "devices",
    "completions",
)


def _add_global_options(parser: argparse.ArgumentParser, *, suppress: bool) -> None:
    default = argparse.SUPPRESS if suppress else None
    flag_default = argparse.SUPPRESS if suppress else False
    parser.add_argument(
        "-k",
        "--api-key",
        default=default,
        help="API key (overrides ALLSCREENSHOTS_API_KEY and the config file)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=flag_default, help="Verbose output")
    parser.add_argument("--no-color", action="store_true", default=flag_default, help="Disable colored output")


async def _list_devices(args: argparse.Namespace, runtime: RuntimeConfig, console: Console) -> None:
    table = Table(title="Device presets", show_edge=False)
    table.add_column("Device", style="cyan")
    table.add_column("Viewport")
    for name, size in DEVICE_PRESETS:
        table.add_row(name, size)
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="allscreenshots",
        description="Capture website screenshots from the command line.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_global_options(parser, suppress=False)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    capture.register(subparsers)
    async_capture.register(subparsers)
    batch.register(subparsers)
    compose.register(subparsers)
    schedule.register(subparsers)
    usage.register(subparsers)
    gallery.register(subparsers)
    watch.register(subparsers)
    jobs.register(subparsers)
    config.register(subparsers)
    devices = subparsers.add_parser("devices", help="Show available device presets")
    devices.set_defaults(handler=_list_devices)
    completions.register(subparsers, parser)

    for sub in subparsers.choices.values():
        _add_global_options(sub, suppress=True)
    return parser


def _expand_quick_capture(argv: List[str], commands: Sequence[str]) -> List[str]:
    """Rewrite ``allscreenshots URL ...`` into ``allscreenshots capture URL ...``."""
    skip_next = False
    for index, token in enumerate(argv):
        if skip_next:
            skip_next = False
            continue
        if token in _OPTIONS_WITH_VALUES:
            skip_next = True
            continue
        if token.startswith("-"):
            continue
        if token in commands:
            return argv
        return argv[:index] + ["capture"] + argv[index:]
    return argv


def _load_config() -> Config:
    try:
        return Config.load()
    except ConfigError as exc:
        logger.warning("%s; using defaults", exc)
        return Config()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    raw = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(_expand_quick_capture(raw, COMMAND_NAMES))

    configure_logging(verbose=args.verbose, use_colors=not args.no_color)
    console = Console(no_color=args.no_color, highlight=False)
    err_console = Console(stderr=True, no_color=args.no_color, highlight=False)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return EXIT_FAILURE

    runtime = RuntimeConfig.resolve(args.api_key, _load_config())

    try:
        asyncio.run(handler(args, runtime, console))
    except CliError as exc:
        logger.debug("Command failed", exc_info=True)
        render_error(err_console, exc)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
