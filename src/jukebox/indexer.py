"""Catalog builder — walks a media directory into catalog records.

Artist, album, disc, track and name come from the path
(``artist/album/1-01 name.ext``); embedded tags read with ``mutagen``
override them and add year and genre.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path

import mutagen

from jukebox.catalog import is_audio_pathname, is_video_pathname, write_catalog
from jukebox.models import CatalogRecord

logger = logging.getLogger("jukebox.indexer")

# "1-01 Hells Bells.m4a" -> disc "1", track "01", name "Hells Bells.m4a"
_DISC_TRACK_NAME = re.compile(r"^\s*(\d*)?-?(\d*)?\s+(.*)$")


# ---------------------------------------------------------------------------
# Pathname metadata
# ---------------------------------------------------------------------------


def get_disc_track_and_name(basename: str) -> tuple[str, str, str]:
    """Split a basename into (disc, track, name).

    A single leading number is the track: ``"01 Song.mp3"`` -> ``("", "01", "Song.mp3")``.
    """
    m = _DISC_TRACK_NAME.match(basename)
    if m is None:
        return "", "", basename
    disc, track, name = m.group(1) or "", m.group(2) or "", m.group(3)
    if disc and not track:
        return "", disc, name
    return disc, track, name


def remove_extension(basename: str) -> str:
    dot = basename.rfind(".")
    return basename[:dot] if dot > 0 else basename


def record_from_pathname(
    pathname: str, mtime: int = 0, tags: Mapping[str, str] | None = None
) -> CatalogRecord:
    """Build a record from an ``artist/album/disc-track name.ext`` relative path.

    Non-blank values in *tags* (as returned by :func:`read_tags`) override
    what the path implies.
    """
    parts = pathname.split("/")
    disc, track, name = get_disc_track_and_name(parts[-1])
    fields = {
        "album": parts[-2] if len(parts) > 1 else "",
        "artist": parts[-3] if len(parts) > 2 else "",
        "name": remove_extension(name),
        "disc": disc or "1",
        "track": track or "1",
    }
    for field, value in (tags or {}).items():
        value = value.strip()
        if value and field in _TAGGED_FIELDS:
            fields[field] = value
    return CatalogRecord(pathname=pathname, mtime=str(mtime), **fields)


# ---------------------------------------------------------------------------
# Embedded tags
# ---------------------------------------------------------------------------

# Easy-tag key -> catalog field.
_TAG_FIELDS: dict[str, str] = {
    "album": "album",
    "artist": "artist",
    "title": "name",
    "discnumber": "disc",
    "tracknumber": "track",
    "date": "year",
    "genre": "genre",
}

_TAGGED_FIELDS = frozenset(_TAG_FIELDS.values())


def _first_tag(tags: mutagen.FileType, key: str) -> str:  # type: ignore[type-arg]
    """Safely extract the first value of a tag key."""
    val = tags.get(key)
    if val and isinstance(val, list) and len(val) > 0:
        return str(val[0])
    return ""


def read_tags(path: str | Path) -> dict[str, str]:
    """Read embedded tags (ID3, Vorbis, MP4, ...) from *path* as catalog fields.

    Only non-blank tags are returned. Unreadable or untagged files yield ``{}``.
    ``"3/12"`` style disc and track numbers keep their leading number.
    """
    fields: dict[str, str] = {}
    try:
        tags = mutagen.File(path, easy=True)
        if tags is not None:
            for key, field in _TAG_FIELDS.items():
                value = _first_tag(tags, key).strip()
                if field in ("disc", "track"):
                    value = value.split("/", 1)[0].strip()
                if value:
                    fields[field] = value
    except Exception:  # noqa: BLE001
        logger.debug("Could not read tags from %s", path, exc_info=True)
    return fields


# ---------------------------------------------------------------------------
# Directory walk
# ---------------------------------------------------------------------------


def _should_skip(entry: os.DirEntry[str]) -> bool:
    if entry.name.startswith("."):
        return True
    try:
        if not entry.is_file(follow_symlinks=False):
            return True
        return entry.stat(follow_symlinks=False).st_size == 0
    except OSError as e:
        logger.warning("Cannot stat %s: %s", entry.path, e)
        return True


def build_catalog(root: str | Path) -> list[CatalogRecord]:
    """Walk *root* and return records for its audio and video files, sorted by path."""
    root = Path(root).resolve()
    records: list[CatalogRecord] = []

    for dirpath, dirnames, _filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        with os.scandir(dirpath) as entries:
            for entry in entries:
                if _should_skip(entry):
                    continue
                relative = Path(entry.path).relative_to(root).as_posix()
                if not (is_audio_pathname(relative) or is_video_pathname(relative)):
                    continue
                mtime = int(entry.stat(follow_symlinks=False).st_mtime)
                tags = read_tags(entry.path)
                records.append(record_from_pathname(relative, mtime=mtime, tags=tags))

    records.sort(key=lambda r: r.pathname)
    logger.info("Indexed %d media files under %s", len(records), root)
    return records


def index_catalog(root: str | Path, output: str | Path) -> int:
    """Build the catalog for *root* and write it to *output*. Returns the record count."""
    records = build_catalog(root)
    write_catalog(output, records)
    return len(records)
