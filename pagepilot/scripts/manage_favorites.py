"""
pagepilot/scripts/manage_favorites.py

Manage saved code favorites from the terminal.

Usage:
    pagepilot-favorites list [--url https://example.com/page]
    pagepilot-favorites list --current-tab
    pagepilot-favorites add --name "Hide images" --url-pattern "https://example.com/*" --file hide.js
    pagepilot-favorites update 3 --name "Hide all images"
    pagepilot-favorites remove 3
    pagepilot-favorites run 3
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from pagepilot.browser.cdp_page import CDPBrowserPage
from pagepilot.data_models.favorites import CodeFavorite
from pagepilot.panels.favorites_panel import CodeFavoritesPanel
from pagepilot.panels.message_view import format_timestamp
from pagepilot.storage.favorites_storage import CodeFavoritesStorage
from pagepilot.utils.cli_utils import add_remote_debugging_argument, add_storage_argument, open_storage
from pagepilot.utils.code_provenance import strip_executed_code


def render_favorites(console: Console, favorites: list[CodeFavorite]) -> None:
    if not favorites:
        console.print("[dim]No favorites.[/dim]")
        return
    table = Table(box=box.SIMPLE)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("URL pattern")
    table.add_column("Uses", justify="right")
    table.add_column("Created")
    now = datetime.now()
    for favorite in favorites:
        table.add_row(
            str(favorite.id),
            favorite.name,
            favorite.url_pattern,
            str(favorite.use_count),
            format_timestamp(favorite.created_at, now=now),
        )
    console.print(table)


def read_code(args: argparse.Namespace) -> str | None:
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return args.code


async def run_command(args: argparse.Namespace, console: Console) -> int:
    store = CodeFavoritesStorage(open_storage(args.storage_path))

    if args.command == "list":
        if args.current_tab:
            page = await asyncio.to_thread(CDPBrowserPage.connect, args.remote_debugging_address)
            try:
                favorites = await CodeFavoritesPanel(store, page=page).list_for_current_page()
            finally:
                page.close()
        else:
            favorites = await CodeFavoritesPanel(store).list_favorites(args.url)
        render_favorites(console, favorites)
        return 0

    if args.command == "add":
        code = read_code(args)
        if code is None:
            console.print("[bold red]Error: provide --code or --file[/bold red]")
            return 1
        favorite = await CodeFavoritesPanel(store).save_code(args.name, code, args.url_pattern)
        if favorite is None:
            console.print("[bold red]Error: name and code must not be blank[/bold red]")
            return 1
        console.print(f"[green]✓ Saved favorite {favorite.id}[/green]")
        return 0

    if args.command == "update":
        existing = await store.get_favorite_by_id(args.id)
        if existing is None:
            console.print(f"[yellow]No favorite with id {args.id}[/yellow]")
            return 1
        code = read_code(args)
        await store.update_favorite(
            args.id,
            name=args.name or existing.name,
            code=code if code is not None else existing.code,
            url_pattern=args.url_pattern or existing.url_pattern,
        )
        console.print(f"[green]✓ Updated favorite {args.id}[/green]")
        return 0

    if args.command == "remove":
        await store.remove_favorite(args.id)
        console.print(f"[green]✓ Removed favorite {args.id}[/green]")
        return 0

    if args.command == "run":
        page = await asyncio.to_thread(CDPBrowserPage.connect, args.remote_debugging_address)
        try:
            outcome = await CodeFavoritesPanel(store, page=page).execute_favorite(args.id)
        finally:
            page.close()
        if outcome is None:
            console.print(f"[yellow]No favorite with id {args.id}[/yellow]")
            return 1
        console.print(strip_executed_code(outcome), markup=False, highlight=False)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main() -> None:
    """Entry point for pagepilot-favorites."""
    parser = argparse.ArgumentParser(description="Manage saved code favorites")
    add_storage_argument(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List favorites")
    list_parser.add_argument("--url", type=str, default=None, help="Only favorites applicable to this URL")
    list_parser.add_argument(
        "--current-tab",
        action="store_true",
        help="Only favorites applicable to the URL open in Chrome",
    )
    add_remote_debugging_argument(list_parser)

    add_parser = subparsers.add_parser("add", help="Save a new favorite")
    add_parser.add_argument("--name", type=str, required=True)
    add_parser.add_argument("--url-pattern", type=str, required=True, help="URL, origin or wildcard pattern")
    add_code_group = add_parser.add_mutually_exclusive_group()
    add_code_group.add_argument("--code", type=str, default=None)
    add_code_group.add_argument("--file", type=str, default=None, help="Read the code from a file")

    update_parser = subparsers.add_parser("update", help="Edit a favorite")
    update_parser.add_argument("id", type=int)
    update_parser.add_argument("--name", type=str, default=None)
    update_parser.add_argument("--url-pattern", type=str, default=None)
    update_code_group = update_parser.add_mutually_exclusive_group()
    update_code_group.add_argument("--code", type=str, default=None)
    update_code_group.add_argument("--file", type=str, default=None)

    remove_parser = subparsers.add_parser("remove", help="Delete a favorite")
    remove_parser.add_argument("id", type=int)

    run_parser = subparsers.add_parser("run", help="Execute a favorite in the current Chrome tab")
    run_parser.add_argument("id", type=int)
    add_remote_debugging_argument(run_parser)

    args = parser.parse_args()
    console = Console()

    try:
        exit_code = asyncio.run(run_command(args, console))
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
