"""Parenthesized expression dialect — parser and evaluator.

Queries look like ``(and (artist ^prince) (not (year 1999)) recent)``.
A query without a leading ``(`` is read as ``(any <query>)``; an empty
query is ``(all)``. Each list is a call: the head names a predicate from a
static registry, the rest are arguments. Nested lists are evaluated first;
bare words are string literals.
"""

from __future__ import annotations

import calendar
import functools
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Union

from jukebox.catalog import INT_FALLBACKS, is_audio_pathname, is_video_pathname, parse_int_or
from jukebox.config import normalize, strip_marks
from jukebox.models import CatalogRecord, Term
from jukebox.search import build_terms, matches, tokenize

logger = logging.getLogger("jukebox.expression")

Node = Union[str, list["Node"]]
Value = Union[bool, str]
Predicate = Callable[[CatalogRecord, Sequence[Value]], bool]

#: Records modified within this many months count as ``recent``.
RECENT_MONTHS = 2

#: Lists nested deeper than this are flattened into their enclosing list.
MAX_DEPTH = 64

#: Longest user pattern compiled as a regular expression.
MAX_PATTERN_LENGTH = 200

# A quantified group whose body is itself quantified, e.g. ``(a+)+``.
_NESTED_QUANTIFIER = re.compile(r"\((?:[^()\\]|\\.)*[*+}](?:[^()\\]|\\.)*\)[*+{]")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _lex(text: str) -> list[tuple[str, str]]:
    """Split *text* into ``("open"|"close"|"atom", value)`` tokens."""
    tokens: list[tuple[str, str]] = []
    current = ""
    in_quotes = False
    i = 0
    n = len(text)

    def flush() -> None:
        nonlocal current
        if current:
            tokens.append(("atom", current))
            current = ""

    while i < n:
        c = text[i]
        if c == "\\" and i + 1 < n and text[i + 1] == '"':
            current += '"'
            i += 2
            continue
        if in_quotes:
            if c == '"':
                if i + 1 < n and text[i + 1] == ":":
                    current += ":"
                    i += 1
                in_quotes = False
                flush()
            else:
                current += c
        elif c == '"':
            in_quotes = True
        elif c in "()":
            flush()
            tokens.append(("open" if c == "(" else "close", c))
        elif c.isspace():
            flush()
        else:
            current += c
        i += 1

    flush()
    return tokens


def parse_expression(text: str) -> Node:
    """Parse *text* into a nested-list AST.

    Unbalanced parentheses are tolerated: missing ``)`` are closed at the
    end of input and stray ``)`` are ignored. Several top-level forms are
    combined with ``and``. Lists nested deeper than :data:`MAX_DEPTH` are
    flattened into the list that encloses them.
    """
    text = text.strip()
    if not text:
        text = "(all)"
    elif not text.startswith("("):
        text = f"(any {text})"

    root: list[Node] = []
    stack: list[list[Node]] = [root]
    flattened = 0
    for kind, value in _lex(text):
        if kind == "open":
            if len(stack) > MAX_DEPTH:
                flattened += 1
                continue
            node: list[Node] = []
            stack[-1].append(node)
            stack.append(node)
        elif kind == "close":
            if flattened:
                flattened -= 1
            elif len(stack) > 1:
                stack.pop()
        else:
            stack[-1].append(value)

    if len(root) == 1 and isinstance(root[0], list):
        return root[0]
    return ["and", *root]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def months_before(now: datetime, months: int) -> datetime:
    """Return *now* moved back *months* calendar months, clamping the day."""
    month = now.month - months
    year = now.year
    while month < 1:
        month += 12
        year -= 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


@functools.lru_cache(maxsize=1024)
def _terms(atoms: tuple[str, ...]) -> tuple[Term, ...]:
    """Read string atoms with the term grammar; atoms with spaces were quoted."""
    tokens: list[str] = []
    for atom in atoms:
        tokens.extend([atom] if " " in atom else tokenize(atom))
    return tuple(build_terms(tokens))


def truth(record: CatalogRecord, value: Value) -> bool:
    """Booleans are themselves; strings are term-dialect tests against *record*."""
    if isinstance(value, bool):
        return value
    return matches(_terms((value,)), record)


@functools.lru_cache(maxsize=1024)
def _pattern(raw: str) -> re.Pattern[str] | None:
    """Compile *raw* for matching normalized text, or None to match it literally.

    Patterns without escapes are normalized like field values, so ``Straße``
    finds ``strasse``. Overlong patterns and nested quantifiers such as
    ``(a+)+`` are not compiled.
    """
    if len(raw) > MAX_PATTERN_LENGTH or _NESTED_QUANTIFIER.search(raw):
        logger.debug("matching pattern %r literally", raw)
        return None
    source = strip_marks(raw) if "\\" in raw else normalize(raw)
    try:
        return re.compile(source, re.IGNORECASE)
    except re.error:
        return None


def _text_matches(field_value: str, arg: str) -> bool:
    normalized = normalize(field_value)
    if normalize(arg) in normalized:
        return True
    pattern = _pattern(arg)
    return pattern is not None and pattern.search(normalized) is not None


def _text_field(field: str) -> Predicate:
    def predicate(record: CatalogRecord, args: Sequence[Value]) -> bool:
        value = getattr(record, field)
        if not args:
            return bool(value.strip())
        return any(
            arg if isinstance(arg, bool) else _text_matches(value, arg) for arg in args
        )

    predicate.__name__ = field
    return predicate


def _numeric_field(field: str, compare: Callable[[int, int], bool]) -> Predicate:
    fallback = INT_FALLBACKS[field]

    def predicate(record: CatalogRecord, args: Sequence[Value]) -> bool:
        raw = getattr(record, field)
        if not args:
            return bool(raw.strip())
        left = parse_int_or(raw, fallback)
        return any(
            arg if isinstance(arg, bool) else compare(left, parse_int_or(arg, fallback))
            for arg in args
        )

    predicate.__name__ = field
    return predicate


def _equal(a: int, b: int) -> bool:
    return a == b


def _less(a: int, b: int) -> bool:
    return a < b


def _greater(a: int, b: int) -> bool:
    return a > b


def _and(record: CatalogRecord, args: Sequence[Value]) -> bool:
    return all(truth(record, a) for a in args)


def _or(record: CatalogRecord, args: Sequence[Value]) -> bool:
    return any(truth(record, a) for a in args)


def _not(record: CatalogRecord, args: Sequence[Value]) -> bool:
    return not _and(record, args)


def _any(record: CatalogRecord, args: Sequence[Value]) -> bool:
    """All string arguments, read together as one term-dialect query, must hold."""
    atoms = tuple(a for a in args if isinstance(a, str))
    flags = [a for a in args if isinstance(a, bool)]
    return all(flags) and matches(_terms(atoms), record)


def _all(record: CatalogRecord, args: Sequence[Value]) -> bool:
    return True


def _audio(record: CatalogRecord, args: Sequence[Value]) -> bool:
    return is_audio_pathname(record.pathname)


def _video(record: CatalogRecord, args: Sequence[Value]) -> bool:
    return is_video_pathname(record.pathname)


#: Predicates that do not depend on evaluation time.
PREDICATES: dict[str, Predicate] = {
    "and": _and,
    "or": _or,
    "not": _not,
    "any": _any,
    "all": _all,
    "audio": _audio,
    "video": _video,
    "path": _text_field("pathname"),
    "album": _text_field("album"),
    "artist": _text_field("artist"),
    "name": _text_field("name"),
    "genre": _text_field("genre"),
    "disc": _numeric_field("disc", _equal),
    "track": _numeric_field("track", _equal),
    "year": _numeric_field("year", _equal),
    "before": _numeric_field("year", _less),
    "after": _numeric_field("year", _greater),
    "mbefore": _numeric_field("mtime", _less),
    "mafter": _numeric_field("mtime", _greater),
}


def build_registry(now: datetime | None = None) -> dict[str, Predicate]:
    """Return the predicate registry with ``recent`` bound to *now*."""
    now = now or datetime.now(timezone.utc)
    cutoff = int(months_before(now, RECENT_MONTHS).timestamp())

    def recent(record: CatalogRecord, args: Sequence[Value]) -> bool:
        return parse_int_or(record.mtime, 0) > cutoff

    return {**PREDICATES, "recent": recent}


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class Evaluator:
    """Interprets expression ASTs against catalog records."""

    def __init__(
        self,
        now: datetime | None = None,
        registry: Mapping[str, Predicate] | None = None,
    ) -> None:
        self.registry: Mapping[str, Predicate] = (
            registry if registry is not None else build_registry(now)
        )

    def evaluate(self, node: Node, record: CatalogRecord) -> Value:
        if isinstance(node, str):
            return node
        if not node:
            return True

        head = node[0]
        predicate = self.registry.get(head.lower()) if isinstance(head, str) else None
        if predicate is None:
            # Unknown call: read every element as query text.
            args = [self.evaluate(child, record) for child in node]
            return _any(record, args)

        args = [self.evaluate(child, record) for child in node[1:]]
        return predicate(record, args)

    def matches(self, ast: Node, record: CatalogRecord) -> bool:
        return truth(record, self.evaluate(ast, record))


class ExpressionQuery:
    """A parsed expression bound to an evaluator."""

    def __init__(self, ast: Node, evaluator: Evaluator | None = None) -> None:
        self.ast = ast
        self.evaluator = evaluator or Evaluator()

    @classmethod
    def parse(cls, query: str, evaluator: Evaluator | None = None) -> ExpressionQuery:
        ast = parse_expression(query)
        logger.debug("parsed expression %r -> %r", query, ast)
        return cls(ast, evaluator)

    def matches(self, record: CatalogRecord) -> bool:
        return self.evaluator.matches(self.ast, record)

    def __repr__(self) -> str:
        return f"ExpressionQuery({self.ast!r})"
