"""Rich terminal formatting for CLI output."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from jukebox.models import CatalogRecord

console = Console()


# ---------------------------------------------------------------------------
# Search results
# ---------------------------------------------------------------------------


def display_search_results(
    query: str,
    catalog: Sequence[CatalogRecord],
    hits: Sequence[int],
    limit: int = 50,
) -> None:
    """Display search hits as a rich table."""
    if not hits:
        console.print(f'[dim]No results found for "{query}".[/dim]')
        return

    shown = hits[:limit] if limit > 0 else hits
    table = Table(
        title=f'Results for "{query}" ({len(hits)} matches)',
        show_header=True,
        header_style="bold",
    )
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Name", no_wrap=False)
    table.add_column("Artist", max_width=20)
    table.add_column("Album", max_width=24)
    table.add_column("Disc", justify="right")
    table.add_column("Track", justify="right")
    table.add_column("Year")

    for i in shown:
        r = catalog[i]
        table.add_row(
            str(i),
            r.name or r.pathname.rsplit("/", 1)[-1],
            r.artist or "-",
            r.album or "-",
            r.disc,
            r.track,
            r.year or "-",
        )

    console.print(table)
    if len(shown) < len(hits):
        console.print(f"[dim]{len(hits) - len(shown)} more not shown (use --limit).[/dim]")


# ---------------------------------------------------------------------------
# Status display
# ---------------------------------------------------------------------------


def display_status(markdown_status: str) -> None:
    """Display the status overview using rich markdown rendering."""
    console.print(Markdown(markdown_status))


# ---------------------------------------------------------------------------
# Index summary
# ---------------------------------------------------------------------------


def display_index_summary(root: str, catalog_path: str, records: int) -> None:
    """Display summary of jukebox index."""
    parts = ["[bold green]Catalog built![/bold green]\n"]
    parts.append(f"  Media root: {root}")
    parts.append(f"  Catalog: {catalog_path}")
    parts.append(f"  Records: {records}")
    console.print(Panel("\n".join(parts), title="Index Complete"))
