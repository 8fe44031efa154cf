from __future__ import annotations

import argparse

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.core.errors import InputValidationError
from allscreenshots_cli.app.core.settings import API_KEY_ENV, Config, RuntimeConfig, mask_api_key, settings


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("config", help="Manage authentication and settings")
    config = parser.add_subparsers(dest="config_command", metavar="COMMAND", required=True)

    add = config.add_parser("add-authtoken", help="Save an API key to the config file")
    add.add_argument("key", help="API key")
    add.set_defaults(handler=add_authtoken)

    remove = config.add_parser("remove-authtoken", help="Remove the saved API key")
    remove.set_defaults(handler=remove_authtoken)

    show = config.add_parser("show", help="Show the current configuration")
    show.set_defaults(handler=show_config)

    path = config.add_parser("path", help="Print the config file location")
    path.set_defaults(handler=show_path)


async def add_authtoken(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    key = args.key.strip()
    if not key:
        raise InputValidationError("API key must not be empty")
    stored = Config.load()
    path = stored.set_api_key(key)
    console.print(f"[green]✓[/] API key saved to {escape(str(path))}")
    console.print(f"  Key: {mask_api_key(key)}")


async def remove_authtoken(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    stored = Config.load()
    if not stored.auth.api_key:
        console.print("[dim]No API key stored in the config file.[/]")
        return
    stored.remove_api_key()
    console.print("[green]✓[/] API key removed")


async def show_config(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    stored = Config.load()
    console.print("[bold underline]Configuration[/]")
    console.print()
    if config.api_key:
        source = "config file" if config.api_key == stored.auth.api_key else "flag or environment"
        console.print(f"  API key: {mask_api_key(config.api_key)} [dim]({source})[/]")
    else:
        console.print(f"  API key: [red]not set[/] [dim](set {API_KEY_ENV} or run config add-authtoken)[/]")
    console.print(f"  API URL: {escape(config.base_url)}")
    console.print()
    console.print("[bold]Defaults[/]")
    for name, value in stored.defaults.model_dump().items():
        console.print(f"  {name}: {escape(str(value))}")
    console.print()
    console.print("[bold]Display[/]")
    for name, value in stored.display.model_dump().items():
        console.print(f"  {name}: {value}")
    console.print()
    console.print(f"[dim]Config file: {escape(str(settings.config_path))}[/]")


async def show_path(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    console.print(escape(str(settings.config_path)), soft_wrap=True)
