"""
CLI for the disk cache.

Commands:
    diskbox get SEGMENT ID - Print a cached item
    diskbox drop SEGMENT ID - Remove a cached item
    diskbox sweep - Reclaim expired and corrupt records once
    diskbox config - Show current configuration
    diskbox version - Print version
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, Optional

import orjson
import typer
from rich.console import Console
from rich.table import Table

from diskbox import __version__
from diskbox.cache.disk_store import DiskStore
from diskbox.config import Settings, clear_settings_cache, get_settings
from diskbox.exceptions import DiskboxError
from diskbox.logging import setup_logging

app = typer.Typer(
    name="diskbox",
    help="Disk-backed key/value cache with TTL expiration",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

CachePathOption = Annotated[
    Optional[Path],
    typer.Option("--cache-path", "-p", help="Cache root (defaults to DISKBOX_CACHE_PATH)"),
]


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _open_store(cache_path: Path | None) -> DiskStore:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'diskbox config' to see what's wrong."
        )
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, log_file=settings.LOG_FILE)
    try:
        # One-shot commands never run the background sweeper
        return DiskStore(cache_path or settings.CACHE_PATH, clean_every=0)
    except DiskboxError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


StoreAction = Callable[[DiskStore], Awaitable[Any]]


async def _with_store(store: DiskStore, action: StoreAction) -> Any:
    await store.start()
    try:
        return await action(store)
    finally:
        await store.drain()
        store.stop()


def _run(store: DiskStore, action: StoreAction) -> Any:
    try:
        return asyncio.run(_with_store(store, action))
    except DiskboxError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def get(
    segment: Annotated[str, typer.Argument(help="Segment name")],
    key_id: Annotated[str, typer.Argument(metavar="ID", help="Key id within the segment")],
    cache_path: CachePathOption = None,
) -> None:
    """Print a cached item as JSON, or 'miss'."""
    store = _open_store(cache_path)
    cached = _run(store, lambda s: s.get({"segment": segment, "id": key_id}))

    if cached is None:
        console.print("[yellow]miss[/yellow]")
        raise typer.Exit(1)

    console.print_json(orjson.dumps(cached.item).decode("utf-8"))
    console.print(f"[dim]ttl remaining: {cached.ttl} ms[/dim]")


@app.command()
def drop(
    segment: Annotated[str, typer.Argument(help="Segment name")],
    key_id: Annotated[str, typer.Argument(metavar="ID", help="Key id within the segment")],
    cache_path: CachePathOption = None,
) -> None:
    """Remove a cached item. Missing items are not an error."""
    store = _open_store(cache_path)
    _run(store, lambda s: s.drop({"segment": segment, "id": key_id}))
    console.print(f"[green]Dropped[/green] {segment}/{key_id}")


@app.command()
def sweep(cache_path: CachePathOption = None) -> None:
    """Reclaim expired and corrupt records under the cache root once."""
    store = _open_store(cache_path)
    report = _run(store, lambda s: s.sweep())

    table = Table(title=f"Sweep of {store.root}", show_header=True)
    table.add_column("Files", style="cyan")
    table.add_column("Count", style="green")
    for name, count in report.to_dict().items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print("Check the DISKBOX_* environment variables and .env file.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in settings.display().items():
        table.add_row(key, str(value) if value is not None else "[dim]not set[/dim]")

    console.print(table)


@app.command()
def version() -> None:
    """Print version."""
    console.print(f"diskbox {__version__}")


if __name__ == "__main__":
    app()
