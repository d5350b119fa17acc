"""Jukebox — search a personal media library."""

from __future__ import annotations

__version__ = "0.1.0"

from jukebox.config import normalize
from jukebox.expression import Evaluator, ExpressionQuery, parse_expression
from jukebox.models import CatalogRecord, SearchRequest, SearchResponse, Term
from jukebox.search import TermQuery, build_terms, matches, search, tokenize
from jukebox.worker import SearchClient, SearchWorker

__all__ = [
    "CatalogRecord",
    "Evaluator",
    "ExpressionQuery",
    "SearchClient",
    "SearchRequest",
    "SearchResponse",
    "SearchWorker",
    "Term",
    "TermQuery",
    "build_terms",
    "matches",
    "normalize",
    "parse_expression",
    "search",
    "tokenize",
]
