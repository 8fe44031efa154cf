from __future__ import annotations

import argparse
import json

from rich.console import Console

from allscreenshots_cli.app.commands.common import build_client
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.graphs import render_quota_status, render_usage_summary, render_usage_table
from allscreenshots_cli.app.display.progress import spinner

USAGE_FORMATS = ("graph", "table", "json")


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("usage", help="Show API usage and quota")
    parser.add_argument("--format", choices=USAGE_FORMATS, default="graph", help="Output format (default: graph)")
    parser.add_argument("--quota-only", action="store_true", help="Show quota status only")
    parser.set_defaults(handler=execute)


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    async with build_client(config) as client:
        if args.quota_only:
            with spinner(console, "Fetching quota..."):
                quota = await client.get_quota()
            render_quota_status(console, quota)
            return

        if args.format == "json":
            usage = await client.get_usage()
            console.out(json.dumps(usage.model_dump(by_alias=True, mode="json"), indent=2), highlight=False)
            return

        with spinner(console, "Fetching usage data..."):
            usage = await client.get_usage()

    if args.format == "table":
        render_usage_table(console, usage)
    else:
        render_usage_summary(console, usage)
