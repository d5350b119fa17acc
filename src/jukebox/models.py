"""Pydantic models for jukebox — the shared data contracts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

#: Field order of a catalog row in the tab-separated payload.
FIELD_ORDER: tuple[str, ...] = (
    "pathname",
    "album",
    "artist",
    "name",
    "disc",
    "track",
    "year",
    "genre",
    "mtime",
)

_FIELD_DEFAULTS: dict[str, str] = {
    "album": "",
    "artist": "",
    "name": "",
    "disc": "1",
    "track": "1",
    "year": "",
    "genre": "",
    "mtime": "0",
}


class CatalogRecord(BaseModel):
    """A single media file in the catalog. Identity is its catalog index."""

    model_config = ConfigDict(frozen=True)

    pathname: str = Field(..., min_length=1)
    album: str = ""
    artist: str = ""
    name: str = ""
    disc: str = "1"
    track: str = "1"
    year: str = ""
    genre: str = ""
    mtime: str = "0"

    @field_validator(
        "album", "artist", "name", "disc", "track", "year", "genre", "mtime", mode="before"
    )
    @classmethod
    def _none_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return _FIELD_DEFAULTS[info.field_name]
        if isinstance(value, int):
            return str(value)
        return value

    def get(self, field: str) -> str:
        """Return the value of *field*, or ``""`` if the record has no such field."""
        return getattr(self, field, "") if field in FIELD_ORDER else ""


# ---------------------------------------------------------------------------
# Query terms
# ---------------------------------------------------------------------------


class Term(BaseModel):
    """One atomic condition: optionally property-scoped, optionally negated.

    An empty ``property`` means a free-text term. Both ``property`` and
    ``value`` are stored normalized.
    """

    model_config = ConfigDict(frozen=True)

    property: str = ""
    value: str = ""
    negated: bool = False


# ---------------------------------------------------------------------------
# Worker messages
# ---------------------------------------------------------------------------

Dialect = Literal["terms", "expression"]


class SearchRequest(BaseModel):
    """Inbound message to a search worker. ``catalog`` is sent once."""

    request_id: int = Field(..., ge=0)
    query: str = ""
    dialect: Dialect = "terms"
    catalog: list[CatalogRecord] | None = None


class SearchResponse(BaseModel):
    """Outbound message from a search worker: hits in catalog order."""

    request_id: int
    hits: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class CatalogStats(BaseModel):
    """Aggregate counts over a loaded catalog."""

    records: int
    audio: int
    video: int
    artists: int
    albums: int
    genres: dict[str, int] = Field(default_factory=dict)
