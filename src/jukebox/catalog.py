"""Catalog codec, media classification, and caller-side hit ordering.

The catalog payload is plain text: one record per line, fields separated by
tabs, in the fixed order of :data:`jukebox.models.FIELD_ORDER`. A payload may
instead start with a header line naming its columns.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from pathlib import Path

from jukebox.config import normalize
from jukebox.models import FIELD_ORDER, CatalogRecord, CatalogStats

logger = logging.getLogger("jukebox.catalog")

# ---------------------------------------------------------------------------
# Integer-like fields
# ---------------------------------------------------------------------------

# Runs longer than 18 digits are treated as unparsable.
_LEADING_INT = re.compile(r"^\s*([+-]?\d{1,18})(?!\d)")

#: Value used when an integer-like field cannot be parsed.
INT_FALLBACKS: dict[str, int] = {
    "disc": 1,
    "track": 1,
    "year": 1970,
    "mtime": 0,
}


def parse_int_or(raw: str | None, fallback: int) -> int:
    """Parse the leading integer of *raw* (``"1999-05"`` -> 1999), else *fallback*."""
    if not raw:
        return fallback
    m = _LEADING_INT.match(raw)
    return int(m.group(1)) if m else fallback


# ---------------------------------------------------------------------------
# Media classification
# ---------------------------------------------------------------------------

AUDIO_EXTENSIONS = frozenset({".flac", ".m4a", ".mid", ".midi", ".mp3", ".ogg", ".wav", ".wave"})
VIDEO_EXTENSIONS = frozenset(
    {".avi", ".m4v", ".mkv", ".mov", ".mp4", ".mpeg", ".mpg", ".ogv", ".webm"}
)


def _extension(pathname: str) -> str:
    basename = pathname.rsplit("/", 1)[-1]
    dot = basename.rfind(".")
    return basename[dot:].lower() if dot != -1 else ""


def is_audio_pathname(pathname: str) -> bool:
    return _extension(pathname) in AUDIO_EXTENSIONS


def is_video_pathname(pathname: str) -> bool:
    return _extension(pathname) in VIDEO_EXTENSIONS


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def _parse_row(values: Sequence[str], columns: Sequence[str]) -> CatalogRecord | None:
    fields: dict[str, str] = {}
    for column, value in zip(columns, values):
        if column in FIELD_ORDER:
            fields[column] = value
    if not fields.get("pathname"):
        return None
    return CatalogRecord(**fields)


def parse_catalog(text: str, header: bool = False) -> list[CatalogRecord]:
    """Parse a tab-separated catalog payload into records.

    With ``header=True`` the first non-blank line names the columns (any
    order; unknown columns are ignored). Otherwise columns follow
    :data:`FIELD_ORDER`. Blank lines and rows without a pathname are skipped.
    """
    columns: Sequence[str] = FIELD_ORDER
    records: list[CatalogRecord] = []
    need_header = header

    for lineno, line in enumerate(text.split("\n"), start=1):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        values = line.split("\t")
        if need_header:
            columns = [normalize(v.strip()) for v in values]
            need_header = False
            continue
        record = _parse_row(values, columns)
        if record is None:
            logger.warning("Skipping catalog line %d: no pathname", lineno)
            continue
        records.append(record)

    return records


def _clean(value: str) -> str:
    return value.replace("\t", " ").replace("\r", " ").replace("\n", " ")


def dump_catalog(records: Iterable[CatalogRecord], header: bool = False) -> str:
    """Serialize *records* to the tab-separated payload."""
    lines: list[str] = []
    if header:
        lines.append("\t".join(FIELD_ORDER))
    for record in records:
        lines.append("\t".join(_clean(getattr(record, f)) for f in FIELD_ORDER))
    return "\n".join(lines) + ("\n" if lines else "")


def load_catalog(path: str | Path, header: bool = False) -> list[CatalogRecord]:
    """Read and parse a catalog file."""
    text = Path(path).read_text(encoding="utf-8")
    records = parse_catalog(text, header=header)
    logger.info("Loaded %d catalog records from %s", len(records), path)
    return records


def write_catalog(
    path: str | Path, records: Iterable[CatalogRecord], header: bool = False
) -> Path:
    """Write *records* to *path*, creating parent directories as needed."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(dump_catalog(records, header=header), encoding="utf-8")
    return p


# ---------------------------------------------------------------------------
# Caller-side ordering
# ---------------------------------------------------------------------------

_LEADING_JUNK = re.compile(r"^(the\s+|a\s+|an\s+|les?\s+|las?\s+|\"|'|\.+\s*)", re.IGNORECASE)

_SORT_ORDERS: dict[str, tuple[str, ...]] = {
    "album": ("album", "artist", "year", "disc", "track", "name", "pathname"),
    "artist": ("artist", "year", "album", "disc", "track", "name", "pathname"),
}

_NUMERIC_SORT_FIELDS = frozenset({"disc", "track", "year"})


def sort_title(title: str) -> str:
    """Normalize *title* for ordering, dropping leading articles and punctuation."""
    return normalize(_LEADING_JUNK.sub("", title, count=1))


def _sort_key(record: CatalogRecord, fields: Sequence[str]) -> tuple:
    key: list[int | str] = []
    for f in fields:
        value = getattr(record, f)
        key.append(parse_int_or(value, 1) if f in _NUMERIC_SORT_FIELDS else sort_title(value))
    return tuple(key)


def sort_hits(
    catalog: Sequence[CatalogRecord], hits: Iterable[int], sort_by: str = "album"
) -> list[int]:
    """Return *hits* ordered for display by album or by artist.

    Unknown *sort_by* values fall back to album order. The input is not modified.
    """
    fields = _SORT_ORDERS.get(sort_by, _SORT_ORDERS["album"])
    return sorted(hits, key=lambda i: _sort_key(catalog[i], fields))


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def newest_record(catalog: Sequence[CatalogRecord]) -> CatalogRecord | None:
    """The most recently modified record, or None for an empty catalog."""
    if not catalog:
        return None
    return max(catalog, key=lambda r: parse_int_or(r.mtime, 0))


def catalog_stats(catalog: Sequence[CatalogRecord]) -> CatalogStats:
    """Aggregate counts for the status views."""
    genres: Counter[str] = Counter(r.genre for r in catalog if r.genre)
    return CatalogStats(
        records=len(catalog),
        audio=sum(1 for r in catalog if is_audio_pathname(r.pathname)),
        video=sum(1 for r in catalog if is_video_pathname(r.pathname)),
        artists=len({normalize(r.artist) for r in catalog if r.artist}),
        albums=len({(normalize(r.artist), normalize(r.album)) for r in catalog if r.album}),
        genres=dict(genres.most_common()),
    )
