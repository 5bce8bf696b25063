"""CLI entry-point for the irrenhaus client."""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from . import categories as category_table
from .client import Irrenhaus
from .config import DEFAULT_BASE_URL, ClientConfig, Credentials, SessionCookies, SiteConfig
from .errors import IrrenhausError, NotFoundError
from .models import CatalogEntry

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB", "TB", "PB"):
        if value < 1024 or unit == "PB":
            return f"{value:.2f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{size} B"


def _print_stats(stats: dict) -> None:
    table = Table(title="Crawl Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    for key, val in stats.items():
        table.add_row(key.replace("_", " ").capitalize(), str(val))
    console.print(table)


def _print_entries(entries: list[CatalogEntry], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", justify="right")
    table.add_column("Name", max_width=60)
    table.add_column("Category")
    table.add_column("Size", justify="right")
    table.add_column("S", justify="right")
    table.add_column("L", justify="right")
    table.add_column("Added")
    for e in entries:
        table.add_row(
            str(e.id),
            e.name,
            category_table.id_to_name(e.category) or "?",
            _human_size(e.size),
            str(e.seeder_count),
            str(e.leecher_count),
            f"{e.added:%Y-%m-%d %H:%M}",
        )
    console.print(table)


def _progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )


@click.group()
@click.option("--url", envvar="IRRENHAUS_URL", default=DEFAULT_BASE_URL, help="Tracker base URL")
@click.option("--username", envvar="IRRENHAUS_USERNAME", default="", help="Account name")
@click.option("--password", envvar="IRRENHAUS_PASSWORD", default="", help="Account password")
@click.option("--pin", envvar="IRRENHAUS_PIN", default="", help="Account PIN")
@click.option("--timeout", envvar="IRRENHAUS_TIMEOUT", default=10.0, type=float, help="Per-request timeout in seconds")
@click.option("--workers", envvar="IRRENHAUS_MAX_WORKERS", default=8, type=int, help="Concurrent page fetches")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, **kwargs: object) -> None:
    """Irrenhaus client – search, inspect and chat on the tracker.

    Credentials are read from the options or from IRRENHAUS_* environment
    variables.  An existing session can be resumed via IRRENHAUS_UID and
    IRRENHAUS_PASS.
    """
    _setup_logging(bool(kwargs.pop("verbose")))
    ctx.ensure_object(dict)
    ctx.obj["cfg"] = ClientConfig(
        site=dataclasses.replace(
            SiteConfig.from_env(),
            base_url=str(kwargs["url"]).rstrip("/"),
            timeout=kwargs["timeout"],  # type: ignore[arg-type]
            max_workers=kwargs["workers"],  # type: ignore[arg-type]
        ),
        credentials=Credentials(
            username=kwargs["username"],  # type: ignore[arg-type]
            password=kwargs["password"],  # type: ignore[arg-type]
            pin=kwargs["pin"],  # type: ignore[arg-type]
        ),
        cookies=SessionCookies.from_env(),
    )


def _client(ctx: click.Context) -> Irrenhaus:
    return Irrenhaus(ctx.obj["cfg"])


# ─── Commands ────────────────────────────────────────────────────


@cli.command()
@click.argument("term", default="")
@click.option("-c", "--category", "category_names", multiple=True, help="Category name or id (repeatable)")
@click.option("--dead", is_flag=True, help="Include inactive torrents")
@click.option("--limit", default=0, type=int, help="Rows to display (0 = all)")
@click.pass_context
def search(ctx: click.Context, term: str, category_names: tuple[str, ...], dead: bool, limit: int) -> None:
    """Search the catalog across all result pages.

    Example: irrenhaus search "ubuntu" -c Software
    """
    cats: list[int] = []
    for name in category_names:
        cid = int(name) if name.isdigit() else category_table.name_to_id(name)
        if cid is None:
            raise click.BadParameter(f"unknown category {name!r}", param_hint="--category")
        cats.append(cid)

    with _client(ctx) as client, _progress() as progress:
        task = progress.add_task(f"Searching {term or 'everything'!r}", total=None)

        def advance(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        try:
            entries = client.search(term, cats, include_dead=dead, progress=advance)
        except IrrenhausError as exc:
            console.print(f"[red]✗[/red] {exc}")
            sys.exit(1)
    entries.sort(key=lambda e: e.added, reverse=True)
    _print_entries(entries[:limit] if limit else entries, f"{len(entries)} torrents")
    _print_stats(client.stats)


@cli.command()
@click.argument("torrent_id", type=int)
@click.option("--files", is_flag=True, help="Include the file list")
@click.option("--peers", is_flag=True, help="Include the peer roster")
@click.option("--snatches", is_flag=True, help="Include the snatch history")
@click.pass_context
def details(ctx: click.Context, torrent_id: int, files: bool, peers: bool, snatches: bool) -> None:
    """Show one torrent.

    Example: irrenhaus details 12345 --files --peers
    """
    with _client(ctx) as client:
        try:
            entry = client.details(torrent_id, files=files, peers=peers, snatches=snatches)
        except NotFoundError:
            console.print(f"[red]✗[/red] Torrent {torrent_id} not found")
            sys.exit(1)
        except IrrenhausError as exc:
            console.print(f"[red]✗[/red] {exc}")
            sys.exit(1)

    console.print(f"[bold cyan]{entry.name}[/bold cyan] (#{entry.id})")
    console.print(f"Category: {category_table.id_to_name(entry.category) or '?'}   Size: {_human_size(entry.size)}")
    console.print(f"Info hash: {entry.info_hash}   Added: {entry.added:%Y-%m-%d %H:%M:%S}")
    console.print(f"Seeders: {entry.seeder_count}   Leechers: {entry.leecher_count}   Snatches: {entry.snatch_count}")
    if entry.description:
        console.print(entry.description, markup=False)

    if entry.files:
        table = Table(title=f"{len(entry.files)} files", header_style="bold cyan")
        table.add_column("Name")
        table.add_column("Size", justify="right")
        for f in entry.files:
            table.add_row(f.name, _human_size(f.size))
        console.print(table)

    if entry.peers:
        table = Table(title=f"{len(entry.peers)} peers", header_style="bold cyan")
        for col in ("Name", "Seeder", "Connectable", "Ratio", "Done", "Client"):
            table.add_column(col)
        for p in entry.peers:
            table.add_row(
                p.name, "✓" if p.seeder else "", "✓" if p.connectable else "✗",
                str(p.ratio), f"{p.completed:.1f}%", p.client,
            )
        console.print(table)

    if entry.snatches:
        table = Table(title=f"{len(entry.snatches)} snatches", header_style="bold cyan")
        for col in ("Name", "Ratio", "Completed", "Seeding"):
            table.add_column(col)
        for s in sorted(entry.snatches, key=lambda s: s.completed):
            table.add_row(s.name, str(s.ratio), f"{s.completed:%Y-%m-%d %H:%M}", "✓" if s.seeding else "")
        console.print(table)


@cli.command()
@click.argument("torrent_id", type=int)
@click.option("-o", "--output", type=click.Path(file_okay=False, path_type=Path), default=Path("."), help="Target directory")
@click.pass_context
def download(ctx: click.Context, torrent_id: int, output: Path) -> None:
    """Download the .torrent file of a torrent."""
    with _client(ctx) as client:
        try:
            dl = client.download(torrent_id)
        except NotFoundError:
            console.print(f"[red]✗[/red] Torrent {torrent_id} not found")
            sys.exit(1)
        except IrrenhausError as exc:
            console.print(f"[red]✗[/red] {exc}")
            sys.exit(1)
    output.mkdir(parents=True, exist_ok=True)
    target = output / dl.filename
    target.write_bytes(dl.content)
    console.print(f"[green]✓[/green] Saved {target}")


@cli.command()
@click.option("-b", "--box", "feed_id", default=1, type=int, help="Shoutbox id")
@click.option("--since", default=0, type=int, help="Only messages after this id")
@click.pass_context
def shoutbox(ctx: click.Context, feed_id: int, since: int) -> None:
    """Print the latest shoutbox messages."""
    with _client(ctx) as client:
        try:
            batch = client.shoutbox_read(feed_id, since)
        except IrrenhausError as exc:
            console.print(f"[red]✗[/red] {exc}")
            sys.exit(1)
    for msg in batch:
        console.print(f"[dim]{msg.date:%d.%m. %H:%M}[/dim] [bold]{msg.user}[/bold]: ", end="")
        console.print(msg.text, markup=False)
    if batch.event is not None and batch.event.type:
        console.print(f"[dim]event {batch.event.type} ({batch.event.id})[/dim]")


@cli.command()
@click.argument("text")
@click.option("-b", "--box", "feed_id", default=1, type=int, help="Shoutbox id")
@click.pass_context
def shout(ctx: click.Context, text: str, feed_id: int) -> None:
    """Post a message to the shoutbox."""
    with _client(ctx) as client:
        try:
            ok = client.shoutbox_write(feed_id, text)
        except IrrenhausError as exc:
            console.print(f"[red]✗[/red] {exc}")
            sys.exit(1)
    if ok:
        console.print("[green]✓[/green] Message posted")
    else:
        console.print("[yellow]?[/yellow] Message not confirmed by the shoutbox")
        sys.exit(1)


@cli.command(name="categories")
def list_categories() -> None:
    """List the tracker's categories."""
    table = Table(title="Categories", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", justify="right")
    table.add_column("Name")
    for cid, name in category_table.all_categories():
        table.add_row(str(cid), name)
    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
