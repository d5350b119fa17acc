"""MCP server for jukebox — 2 tools: search, status."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Literal

from mcp.server.fastmcp import FastMCP

from jukebox.catalog import catalog_stats, newest_record, sort_hits
from jukebox.config import resolve_catalog_path
from jukebox.formatter import format_search_results, format_status

if TYPE_CHECKING:
    from jukebox.worker import SearchClient

logger = logging.getLogger("jukebox.server")
logging.basicConfig(stream=sys.stderr, level=logging.INFO)

mcp = FastMCP(
    "jukebox",
    instructions=(
        "Search a personal media catalog. "
        "Tools: search (query the catalog), status (catalog overview). "
        'Query syntax: bare words, "quoted phrases", -negation, property:value '
        "(path, album, artist, name, disc, track, year, genre, mtime, before, after). "
        "The expression dialect accepts (and ...), (or ...), (not ...), (artist ^regex), recent."
    ),
)

# ---------------------------------------------------------------------------
# Client singleton — catalog loaded lazily on first tool call
# ---------------------------------------------------------------------------

_client: SearchClient | None = None
_client_lock = asyncio.Lock()


async def _get_client() -> SearchClient:
    """Return the search client, loading the catalog on first use."""
    global _client
    if _client is None:
        async with _client_lock:
            if _client is None:
                from jukebox.catalog import load_catalog
                from jukebox.worker import SearchClient

                catalog_path = resolve_catalog_path()
                catalog = await asyncio.to_thread(load_catalog, catalog_path)
                _client = SearchClient(catalog)
    return _client


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def search(
    query: str,
    dialect: Literal["terms", "expression"] = "terms",
    sort_by: Literal["catalog", "album", "artist"] = "catalog",
    limit: int = 50,
) -> str:
    """Search the media catalog. Returns a markdown table of matching items.

    Args:
        query: Query text, e.g. `artist:prince -live "purple rain"`.
        dialect: "terms" (default) or "expression" for `(and (artist x) (year 1999))`.
        sort_by: "catalog" (default, catalog order), "album", or "artist".
        limit: Maximum number of rows to show (default 50, 0 = all).
    """
    try:
        client = await _get_client()
        hits = await client.search(query, dialect=dialect)
        if hits is None:
            return f'Search for "{query}" was superseded by a newer search.'
        if sort_by != "catalog":
            hits = sort_hits(client.catalog, hits, sort_by=sort_by)
        return format_search_results(query, client.catalog, hits, limit=limit)
    except Exception:
        logger.exception("search failed")
        return f'Error: search for "{query}" failed.'


@mcp.tool()
async def status() -> str:
    """Get a catalog overview: record counts, artists, albums, genres."""
    try:
        client = await _get_client()
        catalog = client.catalog
        return format_status(
            catalog_stats(catalog), str(resolve_catalog_path()), newest=newest_record(catalog)
        )
    except Exception:
        logger.exception("status failed")
        return "Error: could not generate status."


# ---------------------------------------------------------------------------
# Entry point (used by `jukebox serve`)
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the jukebox MCP server over stdio."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
