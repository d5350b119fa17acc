"""Tests for jukebox.expression — parser, predicate registry, evaluator."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from jukebox.expression import (
    MAX_DEPTH,
    PREDICATES,
    Evaluator,
    ExpressionQuery,
    build_registry,
    months_before,
    parse_expression,
)
from jukebox.search import search
from tests.conftest import make_record

NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


def _search(catalog, query: str) -> list[int]:
    return search(catalog, ExpressionQuery.parse(query, evaluator=Evaluator(now=NOW)))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParseExpression:
    def test_simple_call(self):
        assert parse_expression("(artist prince)") == ["artist", "prince"]

    def test_nested(self):
        assert parse_expression("(and (artist a) (not (year 1999)))") == [
            "and",
            ["artist", "a"],
            ["not", ["year", "1999"]],
        ]

    def test_bare_query_wrapped_in_any(self):
        assert parse_expression("purple rain") == ["any", "purple", "rain"]

    def test_empty_query_is_all(self):
        assert parse_expression("") == ["all"]
        assert parse_expression("   ") == ["all"]

    def test_quoted_string_is_one_atom(self):
        assert parse_expression('(album "purple rain")') == ["album", "purple rain"]

    def test_quoted_string_keeps_parens(self):
        assert parse_expression('(name "a (b)")') == ["name", "a (b)"]

    def test_missing_close_paren(self):
        assert parse_expression("(and (artist a") == ["and", ["artist", "a"]]

    def test_stray_close_paren(self):
        assert parse_expression("(artist a))") == ["artist", "a"]

    def test_multiple_top_level_forms(self):
        assert parse_expression("(artist a) (year 1999)") == [
            "and",
            ["artist", "a"],
            ["year", "1999"],
        ]

    def test_empty_list(self):
        assert parse_expression("()") == []

    def test_deep_nesting_is_flattened(self):
        ast = parse_expression("(and " * 3000 + "song" + ")" * 3000)
        depth = 0
        node = ast
        while isinstance(node, list) and node and isinstance(node[-1], list):
            node = node[-1]
            depth += 1
        assert depth < MAX_DEPTH
        assert node[-1] == "song"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_names(self):
        registry = build_registry(NOW)
        for name in (
            "and", "or", "not", "any", "audio", "video", "path", "album", "artist",
            "name", "disc", "track", "year", "genre", "recent", "all",
        ):
            assert name in registry

    def test_recent_not_in_static_table(self):
        assert "recent" not in PREDICATES

    def test_months_before(self):
        assert months_before(NOW, 2) == datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)
        # Day clamps to the end of a shorter month.
        assert months_before(datetime(2024, 4, 30), 2) == datetime(2024, 2, 29)
        assert months_before(datetime(2024, 1, 15), 2) == datetime(2023, 11, 15)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class TestEvaluator:
    def test_all(self):
        evaluator = Evaluator(now=NOW)
        assert evaluator.matches(["all"], make_record())

    def test_empty_list_is_true(self):
        assert Evaluator(now=NOW).matches([], make_record())

    def test_symbol_evaluates_to_itself(self):
        assert Evaluator(now=NOW).evaluate("foo", make_record()) == "foo"

    def test_custom_registry(self):
        evaluator = Evaluator(registry={"never": lambda record, args: False})
        assert not evaluator.matches(["never"], make_record())

    def test_unknown_function_degrades_to_text(self):
        record = make_record()
        evaluator = Evaluator(now=NOW)
        assert evaluator.matches(["song"], record)
        assert not evaluator.matches(["frobnicate", "song"], record)

    def test_and_or_not(self):
        record = make_record()
        evaluator = Evaluator(now=NOW)
        assert evaluator.matches(["and", ["artist", "a"], ["year", "1999"]], record)
        assert not evaluator.matches(["and", ["artist", "a"], ["year", "2000"]], record)
        assert evaluator.matches(["or", ["artist", "z"], ["year", "1999"]], record)
        assert evaluator.matches(["not", ["artist", "z"]], record)
        assert not evaluator.matches(["not", ["artist", "a"]], record)

    def test_and_or_identities(self):
        evaluator = Evaluator(now=NOW)
        assert evaluator.matches(["and"], make_record())
        assert not evaluator.matches(["or"], make_record())

    def test_string_arguments_are_text_tests(self):
        evaluator = Evaluator(now=NOW)
        assert evaluator.matches(["and", "song", "rock"], make_record())
        assert not evaluator.matches(["and", "song", "jazz"], make_record())
        assert evaluator.matches(["not", "jazz"], make_record())


class TestExpressionSearch:
    def test_empty_query_returns_everything(self, catalog):
        assert _search(catalog, "") == list(range(len(catalog)))

    def test_bare_query_matches_term_dialect(self, catalog):
        for query in ("prince rain", "prince -rain", "artist:prince", '"here comes"', "zzz"):
            assert _search(catalog, query) == search(catalog, query)

    def test_artist_regex(self, catalog):
        assert _search(catalog, "(artist ^p)") == [0, 1, 2]
        assert _search(catalog, "(artist ^the)") == [5]

    def test_field_ignores_accents(self, catalog):
        assert _search(catalog, "(artist café)") == [4]
        assert _search(catalog, "(artist cafe)") == [4]

    def test_invalid_regex_falls_back_to_literal(self, catalog):
        assert _search(catalog, "(name [)") == []

    def test_escaped_pattern_is_regex(self, catalog):
        assert _search(catalog, r"(name \d{4})") == [2]

    def test_nested_quantifier_matched_literally(self):
        catalog = [make_record(pathname="a" * 40 + "b.mp3"), make_record(name="x (a+)+$ y")]
        assert _search(catalog, '(path "(a+)+$")') == []
        assert _search(catalog, '(name "(a+)+$")') == [1]

    def test_overlong_pattern_matched_literally(self):
        catalog = [make_record(name="a" * 300)]
        assert _search(catalog, "(name " + "a" * 250 + ")") == [0]
        assert _search(catalog, "(name " + "a?" * 150 + ")") == []

    def test_casefold_matches_term_dialect(self):
        catalog = [make_record(artist="Straße"), make_record(name="ﬁne Day")]
        assert search(catalog, "artist:Straße") == [0]
        assert _search(catalog, "(artist Straße)") == [0]
        assert _search(catalog, "(artist strasse)") == [0]
        assert _search(catalog, "(artist ^straße)") == [0]
        assert _search(catalog, "(name fine)") == [1]
        assert _search(catalog, "(name ^ﬁne)") == [1]

    def test_field_any_argument(self, catalog):
        assert _search(catalog, "(artist beatles tacvba)") == [4, 5]

    def test_field_presence(self, catalog):
        assert _search(catalog, "(not (artist))") == [6]

    def test_numeric_fields(self, catalog):
        assert _search(catalog, "(track 8)") == [1]
        assert _search(catalog, "(disc 2)") == [5]
        assert _search(catalog, "(year 1984 1969)") == [0, 1, 5]

    def test_year_ranges(self, catalog):
        assert _search(catalog, "(and (after 1983) (before 2000))") == [0, 1, 4]

    def test_audio_and_video(self, catalog):
        assert _search(catalog, "(video)") == [6]
        assert _search(catalog, "(audio)") == [0, 1, 2, 3, 4, 5]

    def test_path(self, catalog):
        assert _search(catalog, "(path purple)") == [0, 1]

    def test_genre(self, catalog):
        assert _search(catalog, "(genre rock)") == [4, 5]

    def test_recent(self):
        recent = make_record(mtime=str(int(datetime(2024, 3, 1, tzinfo=timezone.utc).timestamp())))
        old = make_record(mtime=str(int(datetime(2023, 6, 1, tzinfo=timezone.utc).timestamp())))
        assert _search([recent, old], "(recent)") == [0]
        assert _search([recent, old], "(not (recent))") == [1]

    def test_composed(self, catalog):
        query = "(and (artist prince) (not (album purple)) (or (year 1982) (year 2000)))"
        assert _search(catalog, query) == [2]

    @pytest.mark.parametrize(
        "query",
        [
            "(", ")", "(()", "((and", '("', "(year)", "(year x)", "(recent now)", "(and)",
            "(and " * 3000 + "song" + ")" * 3000,
            "(" * 5000,
            "(year " + "9" * 5000 + ")",
        ],
    )
    def test_malformed_never_raises(self, catalog, query):
        hits = _search(catalog, query)
        assert hits == sorted(hits)

    def test_dialect_switch(self, catalog):
        assert search(catalog, "(video)", dialect="expression") == [6]
