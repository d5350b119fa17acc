"""Catalog query engine — tokenizing, term building, record matching, scanning.

Query language::

    query    := term*
    term     := ["-"] [property ":"] value
    value    := bareword | '"' quoted phrase '"'

Terms are ANDed. A free-text term matches any textual field; a property
term matches one field. Malformed input never raises: it degrades to the
best-effort tokens it contains.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Protocol

from jukebox.catalog import INT_FALLBACKS, parse_int_or
from jukebox.config import normalize
from jukebox.models import CatalogRecord, Dialect, Term

if TYPE_CHECKING:
    from jukebox.expression import Evaluator

logger = logging.getLogger("jukebox.search")

# Separates fields in the free-text haystack so a term cannot span two fields.
FIELD_DELIMITER = "\x00"

# Fields searched by free-text terms.
TEXT_FIELDS: tuple[str, ...] = ("pathname", "album", "artist", "name", "year", "genre")

NUMERIC_FIELDS = frozenset({"disc", "track", "year", "mtime"})

# Property name -> (record field, comparison). Comparisons: "substring",
# "prefix", "equal", "less", "greater".
PROPERTIES: dict[str, tuple[str, str]] = {
    "path": ("pathname", "substring"),
    "pathname": ("pathname", "substring"),
    "album": ("album", "prefix"),
    "artist": ("artist", "prefix"),
    "name": ("name", "prefix"),
    "genre": ("genre", "prefix"),
    "disc": ("disc", "equal"),
    "track": ("track", "equal"),
    "year": ("year", "equal"),
    "before": ("year", "less"),
    "after": ("year", "greater"),
    "mtime": ("mtime", "equal"),
    "added": ("mtime", "equal"),
    "mbefore": ("mtime", "less"),
    "mafter": ("mtime", "greater"),
}


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


def _push(tokens: list[str], token: str) -> None:
    token = token.strip()
    if token:
        tokens.append(token)


def tokenize(query: str) -> list[str]:
    """Split *query* into tokens.

    - Whitespace outside double quotes separates tokens.
    - ``\\"`` is a literal quote, inside or outside quotes.
    - An unquoted ``:`` ends a ``property:`` token; so does ``"property":``.
    - An unterminated quote flushes what it accumulated.
    """
    tokens: list[str] = []
    in_quotes = False
    current = ""
    i = 0
    n = len(query)

    while i < n:
        c = query[i]
        nxt = query[i + 1] if i + 1 < n else ""

        if c == "\\" and nxt == '"':
            current += '"'
            i += 2
            continue

        if in_quotes:
            if c == '"':
                if nxt == ":":
                    current += ":"
                    i += 1
                _push(tokens, current)
                current = ""
                in_quotes = False
            else:
                current += c
        elif c == '"':
            in_quotes = True
        elif c.isspace():
            _push(tokens, current)
            current = ""
        elif c == ":":
            _push(tokens, current + ":")
            current = ""
        else:
            current += c
        i += 1

    _push(tokens, current)
    return tokens


# ---------------------------------------------------------------------------
# Term builder
# ---------------------------------------------------------------------------


def build_terms(tokens: Sequence[str]) -> list[Term]:
    """Turn a token stream into terms; invalid tokens are skipped."""
    terms: list[Term] = []
    i = 0
    n = len(tokens)

    while i < n:
        token = tokens[i]
        i += 1
        negated = False

        if token.startswith("-"):
            if len(token) == 1:
                continue
            token = token[1:]
            negated = True

        prop = ""
        if token.endswith(":"):
            prop = normalize(token[:-1].strip())
            if not prop:
                continue
            if i < n:
                token = tokens[i]
                i += 1
            else:
                token = ""

        value = normalize(token)
        if not prop and not value:
            continue
        terms.append(Term(property=prop, value=value, negated=negated))

    return terms


def parse_query(query: str) -> list[Term]:
    """Tokenize and build the terms of *query*."""
    return build_terms(tokenize(query))


# ---------------------------------------------------------------------------
# Record matcher
# ---------------------------------------------------------------------------


def haystack(record: CatalogRecord) -> str:
    """Normalized free-text haystack of *record*."""
    return FIELD_DELIMITER.join(normalize(getattr(record, f) or "") for f in TEXT_FIELDS)


def compare_field(field: str, comparison: str, raw: str, value: str) -> bool:
    """Compare one record field value *raw* against a normalized term *value*.

    An empty *value* tests that the field is present (non-blank).
    """
    if not value:
        return bool(raw.strip())

    if field in NUMERIC_FIELDS:
        fallback = INT_FALLBACKS[field]
        left = parse_int_or(raw, fallback)
        right = parse_int_or(value, fallback)
        if comparison == "less":
            return left < right
        if comparison == "greater":
            return left > right
        return left == right

    normalized = normalize(raw)
    if comparison == "substring":
        return value in normalized
    return normalized.startswith(value)


def match_term(term: Term, record: CatalogRecord, text: str | None = None) -> bool:
    """Evaluate one term against *record* (``negated XOR matched``)."""
    if term.property:
        target = PROPERTIES.get(term.property)
        if target is None:
            matched = False
        else:
            field, comparison = target
            matched = compare_field(field, comparison, record.get(field) or "", term.value)
    else:
        matched = term.value in (text if text is not None else haystack(record))
    return term.negated != matched


def matches(terms: Sequence[Term], record: CatalogRecord) -> bool:
    """True if *record* satisfies every term."""
    text: str | None = None
    for term in terms:
        if not term.property and text is None:
            text = haystack(record)
        if not match_term(term, record, text):
            return False
    return True


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class Query(Protocol):
    """A compiled query: anything that can decide whether a record matches."""

    def matches(self, record: CatalogRecord) -> bool: ...


class TermQuery:
    """Conjunction of :class:`Term` objects."""

    def __init__(self, terms: Sequence[Term]) -> None:
        self.terms = list(terms)

    @classmethod
    def parse(cls, query: str) -> TermQuery:
        return cls(parse_query(query))

    def matches(self, record: CatalogRecord) -> bool:
        return matches(self.terms, record)

    def __repr__(self) -> str:
        return f"TermQuery({self.terms!r})"


def compile_query(
    query: str, dialect: Dialect = "terms", evaluator: Evaluator | None = None
) -> Query:
    """Compile *query* in the given dialect."""
    if dialect == "expression":
        from jukebox.expression import ExpressionQuery

        return ExpressionQuery.parse(query, evaluator=evaluator)
    return TermQuery.parse(query)


# ---------------------------------------------------------------------------
# Catalog scanner
# ---------------------------------------------------------------------------


def scan(catalog: Sequence[CatalogRecord], predicate: Callable[[CatalogRecord], bool]) -> list[int]:
    """Indices of records satisfying *predicate*, in catalog order."""
    return [i for i, record in enumerate(catalog) if predicate(record)]


def search(
    catalog: Sequence[CatalogRecord],
    query: str | Query,
    dialect: Dialect = "terms",
) -> list[int]:
    """Return the indices of *catalog* records matching *query*, ascending.

    *query* is either query text in *dialect* or an already compiled query.
    """
    compiled = compile_query(query, dialect) if isinstance(query, str) else query
    hits = scan(catalog, compiled.matches)
    logger.debug("query %r matched %d of %d records", query, len(hits), len(catalog))
    return hits
