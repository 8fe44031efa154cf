from __future__ import annotations

import argparse

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.commands.common import build_client
from allscreenshots_cli.app.core.errors import InputValidationError
from allscreenshots_cli.app.core.inputs import normalize_url, validate_range
from allscreenshots_cli.app.core.settings import RuntimeConfig
from allscreenshots_cli.app.display.progress import spinner
from allscreenshots_cli.app.display.render import (
    render_schedule_details,
    render_schedule_history,
    render_schedule_list,
)
from allscreenshots_cli.app.services.models import ScheduleRequest, ScheduleUpdate

MAX_RETENTION_DAYS = 365

# action -> (spinner text, icon, verb)
ACTIONS = {
    "pause": ("Pausing schedule...", "[yellow]⏸[/]", "paused"),
    "resume": ("Resuming schedule...", "[green]▶[/]", "resumed"),
    "trigger": ("Triggering schedule...", "[cyan]⚡[/]", "triggered"),
}


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("schedule", help="Manage scheduled screenshots")
    schedules = parser.add_subparsers(dest="schedule_command", metavar="COMMAND", required=True)

    list_parser = schedules.add_parser("list", help="List all schedules")
    list_parser.set_defaults(handler=list_schedules)

    create = schedules.add_parser("create", help="Create a new schedule")
    create.add_argument("url", help="URL to capture")
    create.add_argument("--name", required=True, help="Schedule name")
    create.add_argument("--cron", required=True, help='Cron expression (e.g. "0 9 * * *" for daily at 9am)')
    create.add_argument("--timezone", help='Timezone (e.g. "America/New_York")')
    create.add_argument("--retention-days", type=int, help="Days to keep captures (1-365)")
    create.add_argument("--webhook-url", help="Webhook URL for notifications")
    create.set_defaults(handler=create_schedule)

    get = schedules.add_parser("get", help="Get schedule details")
    get.add_argument("id", help="Schedule ID")
    get.set_defaults(handler=get_schedule)

    update = schedules.add_parser("update", help="Update a schedule")
    update.add_argument("id", help="Schedule ID")
    update.add_argument("--name", help="New name")
    update.add_argument("--url", help="New URL")
    update.add_argument("--cron", help="New cron expression")
    update.add_argument("--timezone", help="New timezone")
    update.add_argument("--retention-days", type=int, help="New retention in days (1-365)")
    update.set_defaults(handler=update_schedule)

    delete = schedules.add_parser("delete", help="Delete a schedule")
    delete.add_argument("id", help="Schedule ID")
    delete.set_defaults(handler=delete_schedule)

    for action in ACTIONS:
        action_parser = schedules.add_parser(action, help=f"{action.capitalize()} a schedule")
        action_parser.add_argument("id", help="Schedule ID")
        action_parser.set_defaults(handler=run_action, action=action)

    history = schedules.add_parser("history", help="View execution history")
    history.add_argument("id", help="Schedule ID")
    history.add_argument("--limit", type=int, default=10, help="Maximum number of entries (default: 10)")
    history.set_defaults(handler=show_history)


def _retention(value):
    if value is None:
        return None
    return validate_range("--retention-days", value, 1, MAX_RETENTION_DAYS)


def build_create_request(args: argparse.Namespace) -> ScheduleRequest:
    return ScheduleRequest(
        name=args.name,
        url=normalize_url(args.url),
        schedule=args.cron,
        timezone=args.timezone,
        retention_days=_retention(args.retention_days),
        webhook_url=args.webhook_url,
    )


def build_update(args: argparse.Namespace) -> ScheduleUpdate:
    update = ScheduleUpdate(
        name=args.name,
        url=normalize_url(args.url) if args.url else None,
        schedule=args.cron,
        timezone=args.timezone,
        retention_days=_retention(args.retention_days),
    )
    if update.empty:
        raise InputValidationError("Nothing to update. Pass --name, --url, --cron, --timezone or --retention-days")
    return update


async def list_schedules(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    async with build_client(config) as client:
        with spinner(console, "Fetching schedules..."):
            schedules = await client.list_schedules()
    render_schedule_list(console, schedules)


async def create_schedule(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    request = build_create_request(args)
    async with build_client(config) as client:
        with spinner(console, "Creating schedule..."):
            schedule = await client.create_schedule(request)

    console.print("[bold green]Schedule created![/]")
    console.print(f"  ID: [cyan]{escape(schedule.id)}[/]")
    console.print(f"  Name: {escape(schedule.name)}")
    console.print(f"  URL: {escape(schedule.url)}")
    console.print(f"  Schedule: {escape(schedule.schedule)}")
    if schedule.next_execution_at:
        console.print(f"  Next execution: [cyan]{escape(schedule.next_execution_at)}[/]")


async def get_schedule(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    async with build_client(config) as client:
        with spinner(console, "Fetching schedule..."):
            schedule = await client.get_schedule(args.id)
    render_schedule_details(console, schedule)


async def update_schedule(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    update = build_update(args)
    async with build_client(config) as client:
        with spinner(console, "Updating schedule..."):
            schedule = await client.update_schedule(args.id, update)

    console.print("[bold green]Schedule updated![/]")
    console.print(f"  ID: {escape(schedule.id)}")
    console.print(f"  Name: {escape(schedule.name)}")


async def delete_schedule(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    async with build_client(config) as client:
        with spinner(console, "Deleting schedule..."):
            await client.delete_schedule(args.id)
    console.print(f"[green]✓[/] Schedule {escape(args.id)} deleted")


async def run_action(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    message, icon, verb = ACTIONS[args.action]
    async with build_client(config) as client:
        with spinner(console, message):
            schedule = await client.schedule_action(args.id, args.action)

    console.print(f"{icon} Schedule [bold]{escape(schedule.name)}[/] {verb}")
    if args.action == "resume" and schedule.next_execution_at:
        console.print(f"  Next execution: [cyan]{escape(schedule.next_execution_at)}[/]")


async def show_history(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    if args.limit < 1:
        raise InputValidationError("--limit must be at least 1")
    async with build_client(config) as client:
        with spinner(console, "Fetching history..."):
            history = await client.schedule_history(args.id, args.limit)
    render_schedule_history(console, history)
