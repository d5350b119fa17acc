"""Typer CLI for jukebox — index, search, status, serve."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from jukebox.config import find_project_root, resolve_catalog_path, resolve_media_root

logger = logging.getLogger("jukebox.cli")

app = typer.Typer(
    name="jukebox",
    help="Search a personal media library.",
    no_args_is_help=True,
)


def _catalog_path_or_exit(catalog: str | None) -> Path:
    """Resolve the catalog path, exiting with a message if it does not exist."""
    path = Path(catalog).expanduser().resolve() if catalog else resolve_catalog_path()
    if not path.exists():
        typer.echo(f"Catalog not found at {path}. Run 'jukebox index' first.", err=True)
        raise typer.Exit(1)
    return path


# ---------------------------------------------------------------------------
# jukebox index
# ---------------------------------------------------------------------------


@app.command()
def index(
    root: str = typer.Argument(None, help="Media directory (default: $JUKEBOX_MEDIA_ROOT or cwd)"),
    output: str = typer.Option(
        None, "--output", "-o", help="Catalog file to write (default: .jukebox/catalog.tsv)"
    ),
) -> None:
    """Build the catalog by scanning a media directory."""
    from jukebox.display import display_index_summary
    from jukebox.indexer import index_catalog

    media_root = Path(root).resolve() if root else resolve_media_root()
    if not media_root.is_dir():
        typer.echo(f"Media directory not found: {media_root}", err=True)
        raise typer.Exit(1)

    catalog_path = Path(output).resolve() if output else resolve_catalog_path(find_project_root())
    count = index_catalog(media_root, catalog_path)
    display_index_summary(str(media_root), str(catalog_path), count)


# ---------------------------------------------------------------------------
# jukebox search
# ---------------------------------------------------------------------------


@app.command()
def search(
    query: str = typer.Argument("", help="Search query (empty matches everything)"),
    expr: bool = typer.Option(False, "--expr", "-e", help="Use the expression dialect"),
    sort: str = typer.Option(None, "--sort", "-s", help="Sort by 'album' or 'artist'"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max rows to show (0 = all)"),
    ids: bool = typer.Option(False, "--ids", help="Print matching catalog indices only"),
    catalog: str = typer.Option(None, "--catalog", "-c", help="Catalog file to search"),
) -> None:
    """Search the catalog."""
    from jukebox.catalog import load_catalog, sort_hits
    from jukebox.display import display_search_results
    from jukebox.search import search as search_catalog

    if sort is not None and sort not in ("album", "artist"):
        typer.echo(f"Unknown sort order {sort!r}; use 'album' or 'artist'.", err=True)
        raise typer.Exit(1)

    records = load_catalog(_catalog_path_or_exit(catalog))
    hits = search_catalog(records, query, dialect="expression" if expr else "terms")
    if sort:
        hits = sort_hits(records, hits, sort_by=sort)

    if ids:
        for i in hits:
            typer.echo(str(i))
        return
    display_search_results(query, records, hits, limit=limit)


# ---------------------------------------------------------------------------
# jukebox status
# ---------------------------------------------------------------------------


@app.command(name="status")
def status_cmd(
    catalog: str = typer.Option(None, "--catalog", "-c", help="Catalog file to inspect"),
) -> None:
    """Show catalog statistics."""
    from jukebox.catalog import catalog_stats, load_catalog, newest_record
    from jukebox.display import display_status
    from jukebox.formatter import format_status

    path = _catalog_path_or_exit(catalog)
    records = load_catalog(path)
    display_status(format_status(catalog_stats(records), str(path), newest=newest_record(records)))


# ---------------------------------------------------------------------------
# jukebox serve
# ---------------------------------------------------------------------------


@app.command()
def serve() -> None:
    """Run the MCP server over stdio."""
    from jukebox.server import main

    main()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
