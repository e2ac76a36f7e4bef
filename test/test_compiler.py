"""Tests for compiling lexical clauses and boolean trees."""

from __future__ import annotations

import sys
import unittest
from datetime import timezone
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchDSL.compiler.compiler import QueryCompiler
from SearchDSL.core.errors import (
    EmptyIDList,
    EmptyRange,
    InvalidDate,
    InvalidOperator,
    InvalidParameter,
    MaxDepthExceeded,
    QueryError,
    UnsupportedClause,
    describe,
)
from SearchDSL.core.query import (
    BoolClause,
    DateRangeClause,
    DocIDClause,
    ExistsClause,
    FuzzyClause,
    MatchClause,
    MatchPhraseClause,
    NumericRangeClause,
    PrefixClause,
    QueryClause,
    QueryStringClause,
    RegexpClause,
    TermClause,
    WildcardClause,
)
from SearchDSL.dsl.parser import parse_clause
from SearchDSL.engine.query import (
    BooleanQuery,
    DateRangeQuery,
    DocIDQuery,
    ExistsQuery,
    FuzzyQuery,
    MatchNoneQuery,
    MatchOperator,
    MatchPhraseQuery,
    MatchQuery,
    NumericRangeQuery,
    PrefixQuery,
    QueryStringQuery,
    RegexpQuery,
    TermQuery,
    WildcardQuery,
    effective_boost,
)


def _compile(body):
    return QueryCompiler().compile(QueryClause.of(body)).query


class TestLeafClauses(unittest.TestCase):
    def test_match_round_trip(self) -> None:
        query = _compile(MatchClause(field="content", value="fox", boost=2.0))
        self.assertIsInstance(query, MatchQuery)
        self.assertEqual(query.field, "content")
        self.assertEqual(query.match, "fox")
        self.assertEqual(query.boost, 2.0)
        self.assertEqual(query.operator, MatchOperator.OR)

    def test_zero_boost_means_engine_default(self) -> None:
        query = _compile(TermClause(field="status", value="draft", boost=0))
        self.assertIsNone(query.boost)
        self.assertEqual(effective_boost(query), 1.0)

    def test_each_leaf_maps_to_its_primitive(self) -> None:
        cases = [
            (TermClause(field="f", value="v", boost=1.5), TermQuery, "term"),
            (PrefixClause(field="f", value="v", boost=1.5), PrefixQuery, "prefix"),
            (WildcardClause(field="f", value="v*", boost=1.5), WildcardQuery, "wildcard"),
            (RegexpClause(field="f", value="v.+", boost=1.5), RegexpQuery, "regexp"),
            (FuzzyClause(field="f", value="v", boost=1.5), FuzzyQuery, "term"),
            (MatchPhraseClause(field="f", value="v w", boost=1.5), MatchPhraseQuery, "match_phrase"),
        ]
        for body, expected_type, value_attr in cases:
            with self.subTest(kind=type(body).__name__):
                query = _compile(body)
                self.assertIsInstance(query, expected_type)
                self.assertEqual(query.field, "f")
                self.assertEqual(query.boost, 1.5)
                self.assertEqual(getattr(query, value_attr), body.value)

    def test_match_phrase_with_slop(self) -> None:
        query = _compile(MatchPhraseClause(field="content", value="quick brown fox", slop=1))
        self.assertIsInstance(query, MatchPhraseQuery)
        self.assertEqual(query.match_phrase, "quick brown fox")
        self.assertEqual(query.slop, 1)

    def test_match_operator_and_fuzziness(self) -> None:
        query = _compile(MatchClause(field="c", value="v", operator="and", fuzziness=1, prefix_length=2))
        self.assertEqual(query.operator, MatchOperator.AND)
        self.assertEqual(query.fuzziness, 1)
        self.assertEqual(query.prefix, 2)

    def test_invalid_operator(self) -> None:
        for operator in ("AND", "xor", ""):
            with self.subTest(operator=operator):
                with self.assertRaises(InvalidOperator):
                    _compile(MatchClause(field="c", value="v", operator=operator))

    def test_negative_match_parameters(self) -> None:
        with self.assertRaises(InvalidParameter):
            _compile(MatchClause(field="c", value="v", fuzziness=-1))
        with self.assertRaises(InvalidParameter):
            _compile(MatchClause(field="c", value="v", prefix_length=-1))

    def test_fuzzy_defaults_and_limits(self) -> None:
        self.assertEqual(_compile(FuzzyClause(field="c", value="v")).fuzziness, 1)
        with self.assertRaises(InvalidParameter):
            _compile(FuzzyClause(field="c", value="v", fuzziness=3))

    def test_bad_regexp(self) -> None:
        with self.assertRaises(InvalidParameter):
            _compile(RegexpClause(field="c", value="(unclosed"))

    def test_numeric_range(self) -> None:
        query = _compile(NumericRangeClause(field="price", min=1, max=5, inclusive_max=True))
        self.assertIsInstance(query, NumericRangeQuery)
        self.assertEqual((query.min, query.max), (1.0, 5.0))
        self.assertIsNone(query.inclusive_min)
        self.assertTrue(query.inclusive_max)

    def test_empty_ranges(self) -> None:
        with self.assertRaises(EmptyRange):
            _compile(NumericRangeClause(field="price"))
        with self.assertRaises(EmptyRange):
            _compile(DateRangeClause(field="created_at"))

    def test_numeric_range_min_above_max(self) -> None:
        with self.assertRaises(InvalidParameter):
            _compile(NumericRangeClause(field="price", min=5, max=1))

    def test_date_range(self) -> None:
        query = _compile(DateRangeClause(field="created_at", start="2024-01-01T00:00:00Z"))
        self.assertIsInstance(query, DateRangeQuery)
        self.assertEqual(query.start.year, 2024)
        self.assertEqual(query.start.utcoffset(), timezone.utc.utcoffset(None))
        self.assertIsNone(query.end)
        self.assertIsNone(query.inclusive_start)

    def test_invalid_date_names_bound(self) -> None:
        with self.assertRaises(InvalidDate) as ctx:
            _compile(DateRangeClause(field="created_at", start="2024-01-01T00:00:00Z", end="next week"))
        self.assertEqual(ctx.exception.field, "end")

    def test_date_without_offset_is_invalid(self) -> None:
        with self.assertRaises(InvalidDate) as ctx:
            _compile(DateRangeClause(field="created_at", start="2024-01-01T00:00:00"))
        self.assertEqual(ctx.exception.field, "start")

    def test_query_string_passthrough(self) -> None:
        query = _compile(QueryStringClause(query='+content:"quick fox" -status:archived', default_field="content"))
        self.assertIsInstance(query, QueryStringQuery)
        self.assertEqual(query.query, '+content:"quick fox" -status:archived')
        self.assertEqual(query.default_field, "content")

    def test_doc_id(self) -> None:
        query = _compile(DocIDClause(ids=("doc2", "doc1")))
        self.assertIsInstance(query, DocIDQuery)
        self.assertEqual(query.ids, ["doc2", "doc1"])
        with self.assertRaises(EmptyIDList):
            _compile(DocIDClause(ids=()))

    def test_exists(self) -> None:
        query = _compile(ExistsClause(field="vector"))
        self.assertIsInstance(query, ExistsQuery)
        self.assertEqual(query.field, "vector")

    def test_mismatched_kind_and_body(self) -> None:
        with self.assertRaises(UnsupportedClause):
            QueryCompiler().compile(QueryClause(kind="term", body=MatchClause(field="a", value="b")))
        with self.assertRaises(UnsupportedClause):
            QueryCompiler().compile(QueryClause(kind="geo", body=MatchClause(field="a", value="b")))


class TestBooleanClauses(unittest.TestCase):
    def test_draft_not_archived(self) -> None:
        clause = parse_clause(
            {
                "bool": {
                    "must": [{"term": {"field": "status", "value": "draft"}}],
                    "must_not": [{"term": {"field": "status", "value": "archived"}}],
                    "minimum_should_match": 0,
                }
            }
        )
        query = QueryCompiler().compile(clause).query
        self.assertIsInstance(query, BooleanQuery)
        self.assertEqual([q.term for q in query.must], ["draft"])
        self.assertEqual([q.term for q in query.must_not], ["archived"])
        self.assertEqual(query.should, [])
        self.assertEqual(query.min_should, 0)

    def test_children_keep_order_and_boost(self) -> None:
        clause = QueryClause.of(
            BoolClause(
                should=tuple(QueryClause.of(TermClause(field="f", value=v)) for v in ("a", "b", "c")),
                minimum_should_match=2,
                boost=3.0,
            )
        )
        query = QueryCompiler().compile(clause).query
        self.assertEqual([q.term for q in query.should], ["a", "b", "c"])
        self.assertEqual(query.min_should, 2)
        self.assertEqual(query.boost, 3.0)

    def test_minimum_should_match_above_should_count_is_kept(self) -> None:
        clause = QueryClause.of(
            BoolClause(should=(QueryClause.of(TermClause(field="f", value="a")),), minimum_should_match=4)
        )
        query = QueryCompiler().compile(clause).query
        self.assertEqual(query.min_should, 4)

    def test_minimum_should_match_discounts_hoisted_vectors(self) -> None:
        clause = parse_clause(
            {
                "bool": {
                    "should": [
                        {"term": {"field": "f", "value": "a"}},
                        {"vector": {"field": "vector", "vector": [1, 0], "model": "custom", "k": 3}},
                        {"term": {"field": "f", "value": "b"}},
                    ],
                    "minimum_should_match": 2,
                }
            }
        )
        query = QueryCompiler().compile(clause).query
        self.assertEqual([q.term for q in query.should], ["a", "b"])
        self.assertEqual(query.min_should, 1)

    def test_grandchild_error_fails_whole_tree_with_position(self) -> None:
        clause = parse_clause(
            {
                "bool": {
                    "must": [
                        {"term": {"field": "status", "value": "draft"}},
                        {
                            "bool": {
                                "should": [
                                    {"match": {"field": "content", "value": "fox"}},
                                    {"doc_id": {"ids": []}},
                                ]
                            }
                        },
                    ]
                }
            }
        )
        with self.assertRaises(EmptyIDList) as ctx:
            QueryCompiler().compile(clause)
        error = ctx.exception
        self.assertEqual(error.position, [("must", 1, "bool"), ("should", 1, "doc_id")])
        self.assertEqual(error.where(), "must[1].bool.should[1].doc_id")
        self.assertTrue(describe(error).startswith("must[1].bool.should[1].doc_id: "))
        self.assertEqual(error.message, "doc_id requires at least one id")

    def test_first_failure_wins(self) -> None:
        clause = parse_clause(
            {
                "bool": {
                    "must": [{"numeric_range": {"field": "price"}}],
                    "should": [{"doc_id": {"ids": []}}],
                }
            }
        )
        with self.assertRaises(QueryError) as ctx:
            QueryCompiler().compile(clause)
        self.assertIsInstance(ctx.exception, EmptyRange)

    def test_empty_bool_matches_nothing(self) -> None:
        query = QueryCompiler().compile(QueryClause.of(BoolClause())).query
        self.assertIsInstance(query, MatchNoneQuery)

    def test_max_depth(self) -> None:
        clause = QueryClause.of(TermClause(field="f", value="v"))
        for _ in range(5):
            clause = QueryClause.of(BoolClause(must=(clause,)))
        QueryCompiler(max_depth=5).compile(clause)
        with self.assertRaises(MaxDepthExceeded):
            QueryCompiler(max_depth=4).compile(clause)


if __name__ == "__main__":
    unittest.main()
