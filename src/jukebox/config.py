"""Project configuration, catalog path resolution, and search normalization."""

from __future__ import annotations

import functools
import os
import re
import unicodedata
from pathlib import Path

# ---------------------------------------------------------------------------
# Search normalization
# ---------------------------------------------------------------------------

# Combining diacritical mark blocks: Combining Diacritical Marks, Extended,
# Supplement, for Symbols, and Half Marks.
_MARKS = r"\u0300-\u036f\u1ab0-\u1aff\u1dc0-\u1dff\u20d0-\u20ff\ufe20-\ufe2f"

# A base character followed by one or more marks. Marks with no base are kept.
_BASE_WITH_MARKS = re.compile(f"([^{_MARKS}])[{_MARKS}]+")


def strip_marks(raw: str) -> str:
    """Decompose *raw* (NFD) and drop the combining marks that follow a base."""
    return _BASE_WITH_MARKS.sub(r"\1", unicodedata.normalize("NFD", raw))


@functools.lru_cache(maxsize=65536)
def normalize(raw: str) -> str:
    """Canonicalize a string for search comparison.

    Applies: NFD decomposition -> combining mark removal -> casefold.
    ``normalize("Café") == normalize("CAFE") == "cafe"``.
    """
    return strip_marks(raw).casefold()


# ---------------------------------------------------------------------------
# Project root detection
# ---------------------------------------------------------------------------


def find_project_root(start: str | Path | None = None) -> Path:
    """Walk up from *start* (default: cwd) looking for a project root marker.

    Markers (in priority order): .git, pyproject.toml, package.json, Cargo.toml.
    Falls back to *start* itself if no marker is found.
    """
    p = Path(start) if start else Path.cwd()
    p = p.resolve()

    for directory in [p, *p.parents]:
        for marker in (".git", "pyproject.toml", "package.json", "Cargo.toml"):
            if (directory / marker).exists():
                return directory
    return p


# ---------------------------------------------------------------------------
# Catalog path resolution
# ---------------------------------------------------------------------------


def resolve_catalog_path(project_root: str | Path | None = None) -> Path:
    """Resolve the catalog file path.

    Priority:
    1. JUKEBOX_CATALOG_PATH environment variable
    2. <project_root>/.jukebox/catalog.tsv
    """
    env_path = os.environ.get("JUKEBOX_CATALOG_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()

    root = Path(project_root) if project_root else find_project_root()
    return root / ".jukebox" / "catalog.tsv"


def resolve_media_root() -> Path:
    """Resolve the media directory to index: JUKEBOX_MEDIA_ROOT, else the cwd."""
    env_root = os.environ.get("JUKEBOX_MEDIA_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path.cwd().resolve()
