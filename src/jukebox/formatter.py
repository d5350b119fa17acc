"""Markdown output formatting for MCP tool responses."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from jukebox.catalog import parse_int_or
from jukebox.models import CatalogRecord, CatalogStats

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _format_mtime(mtime: str) -> str:
    """Format a Unix timestamp string as a date, or ``-`` when unset."""
    seconds = parse_int_or(mtime, 0)
    if seconds <= 0:
        return "-"
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%d")


def _escape_cell(text: str) -> str:
    """Escape pipes so a value cannot break a markdown table row."""
    return text.replace("|", "\\|")


def format_track(record: CatalogRecord) -> str:
    """One-line description: "Name" — Artist — Album."""
    title = record.name or record.pathname.rsplit("/", 1)[-1]
    parts = [f'"{title}"']
    if record.artist:
        parts.append(record.artist)
    if record.album:
        parts.append(record.album)
    return " — ".join(parts)


# ---------------------------------------------------------------------------
# search tool output
# ---------------------------------------------------------------------------


def format_search_results(
    query: str,
    catalog: Sequence[CatalogRecord],
    hits: Sequence[int],
    limit: int = 50,
) -> str:
    """Format hits as a markdown table, truncated to *limit* rows."""
    if not hits:
        return f'No results found for "{query}".'

    shown = hits[:limit] if limit > 0 else hits
    lines = [f'## Results for "{query}"', ""]
    count = f"{len(hits)} match(es)"
    if len(shown) < len(hits):
        count += f", showing {len(shown)}"
    lines.append(count)
    lines.append("")
    lines.append("| # | Name | Artist | Album | Disc | Track | Year | Path |")
    lines.append("|---|---|---|---|---|---|---|---|")
    for i in shown:
        r = catalog[i]
        cells = [str(i), r.name, r.artist, r.album, r.disc, r.track, r.year, r.pathname]
        lines.append("| " + " | ".join(_escape_cell(c) for c in cells) + " |")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# status tool output
# ---------------------------------------------------------------------------


def format_status(
    stats: CatalogStats,
    catalog_path: str,
    newest: CatalogRecord | None = None,
) -> str:
    """Format a catalog overview."""
    lines = ["## Catalog Status", ""]
    lines.append(f"- **Catalog**: {catalog_path}")
    lines.append(f"- **Records**: {stats.records} ({stats.audio} audio, {stats.video} video)")
    lines.append(f"- **Artists**: {stats.artists}")
    lines.append(f"- **Albums**: {stats.albums}")
    if newest is not None:
        lines.append(f"- **Newest**: {format_track(newest)} ({_format_mtime(newest.mtime)})")

    if stats.genres:
        lines.append("")
        lines.append("### Genres")
        for genre, count in list(stats.genres.items())[:10]:
            lines.append(f"- {genre}: {count}")

    return "\n".join(lines)
