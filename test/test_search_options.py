"""Tests for applying search options and facets to engine requests."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchDSL.compiler.options import apply_facets, apply_search_options
from SearchDSL.core.errors import InvalidDate
from SearchDSL.core.query import FacetRange, FacetSpec, Highlight, SearchOptions, SortOption
from SearchDSL.engine.query import MatchAllQuery
from SearchDSL.engine.request import DEFAULT_SIZE, EngineRequest


def _request() -> EngineRequest:
    return EngineRequest(query=MatchAllQuery())


class TestApplySearchOptions(unittest.TestCase):
    def test_none_is_noop(self) -> None:
        request = _request()
        apply_search_options(request, None)
        self.assertEqual(request.size, DEFAULT_SIZE)
        self.assertEqual(request.sort, ["-_score"])
        self.assertIsNone(request.highlight)

    def test_composite_sort(self) -> None:
        request = _request()
        options = SearchOptions(
            sort=(SortOption(field="_score", desc=True), SortOption(field="created_at", desc=False))
        )
        apply_search_options(request, options)
        self.assertEqual(request.sort, ["-_score", "created_at"])

    def test_score_is_always_descending(self) -> None:
        request = _request()
        apply_search_options(request, SearchOptions(sort=(SortOption(field="title", desc=True), SortOption(field="_score"))))
        self.assertEqual(request.sort, ["-title", "-_score"])

    def test_zero_size_and_from_are_unset(self) -> None:
        request = _request()
        apply_search_options(request, SearchOptions(size=0, from_=0))
        self.assertEqual(request.size, DEFAULT_SIZE)
        self.assertEqual(request.from_, 0)

        apply_search_options(request, SearchOptions(size=3, from_=6))
        self.assertEqual((request.size, request.from_), (3, 6))

    def test_fields_only_when_non_empty(self) -> None:
        request = _request()
        apply_search_options(request, SearchOptions(fields=()))
        self.assertEqual(request.fields, [])
        apply_search_options(request, SearchOptions(fields=("id", "content")))
        self.assertEqual(request.fields, ["id", "content"])

    def test_highlight_fields_set_verbatim_even_if_empty(self) -> None:
        request = _request()
        apply_search_options(request, SearchOptions(highlight=Highlight(style="ansi")))
        assert request.highlight is not None
        self.assertEqual(request.highlight.style, "ansi")
        self.assertEqual(request.highlight.fields, [])

    def test_explain_passthrough(self) -> None:
        request = _request()
        apply_search_options(request, SearchOptions(explain=True))
        self.assertTrue(request.explain)


class TestApplyFacets(unittest.TestCase):
    def test_facet_kinds(self) -> None:
        request = _request()
        apply_facets(
            request,
            {
                "status": FacetSpec(type="terms", field="status", size=5),
                "price": FacetSpec(
                    type="numeric_range",
                    field="price",
                    ranges=(FacetRange(name="cheap", max=10), FacetRange(name="dear", min=10)),
                ),
                "created": FacetSpec(
                    type="date_range",
                    field="created_at",
                    ranges=(FacetRange(name="2024", start="2024-01-01T00:00:00Z", end="2025-01-01T00:00:00Z"),),
                ),
            },
        )
        self.assertEqual(request.facets["status"].size, 5)
        self.assertEqual([b.name for b in request.facets["price"].numeric_ranges], ["cheap", "dear"])
        self.assertEqual(request.facets["created"].date_ranges[0].start.year, 2024)

    def test_bad_facet_date(self) -> None:
        with self.assertRaises(InvalidDate):
            apply_facets(
                _request(),
                {"d": FacetSpec(type="date_range", field="d", ranges=(FacetRange(name="x", start="soon"),))},
            )


if __name__ == "__main__":
    unittest.main()
