"""Search engine interface for SearchDSL.

Exposes the engine-native query constructors, the request and result types,
and the index handle the compiled queries are executed against.
"""

from __future__ import annotations

from SearchDSL.engine.index import Index, IndexMapping, open_or_create
from SearchDSL.engine.query import (
    BooleanQuery,
    DateRangeQuery,
    DocIDQuery,
    EngineQuery,
    ExistsQuery,
    FuzzyQuery,
    MatchAllQuery,
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
    query_to_dict,
)
from SearchDSL.engine.request import (
    DateRangeBucket,
    EngineRequest,
    FacetRequest,
    HighlightRequest,
    KNNRequest,
    NumericRangeBucket,
)
from SearchDSL.engine.result import DocumentMatch, FacetResult, SearchResult

__all__ = [
    "BooleanQuery",
    "DateRangeBucket",
    "DateRangeQuery",
    "DocIDQuery",
    "DocumentMatch",
    "EngineQuery",
    "EngineRequest",
    "ExistsQuery",
    "FacetRequest",
    "FacetResult",
    "FuzzyQuery",
    "HighlightRequest",
    "Index",
    "IndexMapping",
    "KNNRequest",
    "MatchAllQuery",
    "MatchNoneQuery",
    "MatchOperator",
    "MatchPhraseQuery",
    "MatchQuery",
    "NumericRangeBucket",
    "NumericRangeQuery",
    "PrefixQuery",
    "QueryStringQuery",
    "RegexpQuery",
    "SearchResult",
    "TermQuery",
    "WildcardQuery",
    "effective_boost",
    "open_or_create",
    "query_to_dict",
]
