"""Shared fixtures and factories for jukebox tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from jukebox.catalog import dump_catalog
from jukebox.models import CatalogRecord

# ---------------------------------------------------------------------------
# Sample corpus
# ---------------------------------------------------------------------------

# pathname, album, artist, name, disc, track, year, genre, mtime
SAMPLE_ROWS: list[tuple[str, ...]] = [
    ("Prince/Purple Rain/1-01 Let's Go Crazy.mp3", "Purple Rain", "Prince",
     "Let's Go Crazy", "1", "1", "1984", "Funk", "1700000000"),
    ("Prince/Purple Rain/1-08 Purple Rain.mp3", "Purple Rain", "Prince",
     "Purple Rain", "1", "8", "1984", "Funk", "1700000000"),
    ("Prince/1999/1-01 1999.flac", "1999", "Prince",
     "1999", "1", "1", "1982", "Funk", "1600000000"),
    ("Janelle Monáe/Dirty Computer/01 Dirty Computer.m4a", "Dirty Computer", "Janelle Monáe",
     "Dirty Computer", "1", "1", "2018", "R&B", "1750000000"),
    ("Café Tacvba/Re/03 Ingrata.ogg", "Re", "Café Tacvba",
     "Ingrata", "1", "3", "1994", "Rock", "1500000000"),
    ("The Beatles/Abbey Road/2-01 Here Comes the Sun.mp3", "Abbey Road", "The Beatles",
     "Here Comes the Sun", "2", "1", "1969", "Rock", "1400000000"),
    ("Concerts/Live at Wembley.mkv", "Concerts", "",
     "Live at Wembley", "1", "1", "", "", "1650000000"),
]


def make_record(**overrides: str) -> CatalogRecord:
    defaults = {
        "pathname": "A/B/01 Song.mp3",
        "album": "B",
        "artist": "A",
        "name": "Song",
        "disc": "1",
        "track": "1",
        "year": "1999",
        "genre": "Rock",
        "mtime": "0",
    }
    defaults.update(overrides)
    return CatalogRecord(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def catalog() -> list[CatalogRecord]:
    """The sample catalog as records, in catalog order."""
    fields = ("pathname", "album", "artist", "name", "disc", "track", "year", "genre", "mtime")
    return [CatalogRecord(**dict(zip(fields, row))) for row in SAMPLE_ROWS]


@pytest.fixture()
def single_record_catalog() -> list[CatalogRecord]:
    """One-record catalog: A/B/01 Song.mp3 by A, 1999, Rock."""
    return [make_record()]


@pytest.fixture()
def catalog_file(tmp_path: Path, catalog: list[CatalogRecord]) -> Path:
    """The sample catalog written as a tab-separated file."""
    path = tmp_path / "catalog.tsv"
    path.write_text(dump_catalog(catalog), encoding="utf-8")
    return path


@pytest.fixture()
def env_catalog_path(catalog_file: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Set JUKEBOX_CATALOG_PATH env var to the sample catalog file."""
    monkeypatch.setenv("JUKEBOX_CATALOG_PATH", str(catalog_file))
    return catalog_file


@pytest.fixture()
def media_root(tmp_path: Path) -> Path:
    """A small media tree with audio, video, and files the indexer must skip."""
    root = tmp_path / "media"
    files = {
        "AC_DC/Back In Black/1-01 Hells Bells.m4a": b"audio",
        "AC_DC/Back In Black/1-02 Shoot to Thrill.m4a": b"audio",
        "Prince/1999/01 1999.mp3": b"audio",
        "Videos/Concert.mp4": b"video",
        "Prince/1999/cover.jpg": b"image",
        "Prince/1999/.hidden.mp3": b"audio",
        "Prince/1999/empty.mp3": b"",
        ".cache/Ghost/Album/01 Song.mp3": b"audio",
    }
    for rel, data in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
    return root
