"""Engine-native query objects.

These are the primitives the compiler targets. They mirror the query
constructors of a full-text engine: every query carries an optional
``field`` (``None`` searches the mapping's default text fields) and an
optional ``boost`` (``None`` means the engine default of 1.0).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

DEFAULT_BOOST = 1.0


class MatchOperator(str, Enum):
    OR = "or"
    AND = "and"


@dataclass(slots=True)
class MatchQuery:
    match: str
    field: str | None = None
    boost: float | None = None
    operator: MatchOperator = MatchOperator.OR
    fuzziness: int = 0
    prefix: int = 0
    analyzer: str | None = None


@dataclass(slots=True)
class MatchPhraseQuery:
    match_phrase: str
    field: str | None = None
    boost: float | None = None
    slop: int = 0
    analyzer: str | None = None


@dataclass(slots=True)
class TermQuery:
    term: str
    field: str | None = None
    boost: float | None = None


@dataclass(slots=True)
class PrefixQuery:
    prefix: str
    field: str | None = None
    boost: float | None = None


@dataclass(slots=True)
class FuzzyQuery:
    term: str
    field: str | None = None
    boost: float | None = None
    fuzziness: int = 1
    prefix: int = 0


@dataclass(slots=True)
class WildcardQuery:
    wildcard: str
    field: str | None = None
    boost: float | None = None


@dataclass(slots=True)
class RegexpQuery:
    regexp: str
    field: str | None = None
    boost: float | None = None


@dataclass(slots=True)
class NumericRangeQuery:
    """Numeric range; unset inclusivity means min inclusive, max exclusive."""

    field: str | None = None
    min: float | None = None
    max: float | None = None
    inclusive_min: bool | None = None
    inclusive_max: bool | None = None
    boost: float | None = None


@dataclass(slots=True)
class DateRangeQuery:
    """Date range; unset inclusivity means start inclusive, end exclusive."""

    field: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    inclusive_start: bool | None = None
    inclusive_end: bool | None = None
    boost: float | None = None


@dataclass(slots=True)
class QueryStringQuery:
    query: str
    default_field: str | None = None
    boost: float | None = None


@dataclass(slots=True)
class DocIDQuery:
    ids: list[str] = field(default_factory=list)
    boost: float | None = None


@dataclass(slots=True)
class ExistsQuery:
    field: str
    boost: float | None = None


@dataclass(slots=True)
class MatchAllQuery:
    boost: float | None = None


@dataclass(slots=True)
class MatchNoneQuery:
    boost: float | None = None


@dataclass(slots=True)
class BooleanQuery:
    must: list[EngineQuery] = field(default_factory=list)
    should: list[EngineQuery] = field(default_factory=list)
    must_not: list[EngineQuery] = field(default_factory=list)
    min_should: int = 0
    boost: float | None = None

    def add_must(self, *queries: EngineQuery) -> None:
        self.must.extend(queries)

    def add_should(self, *queries: EngineQuery) -> None:
        self.should.extend(queries)

    def add_must_not(self, *queries: EngineQuery) -> None:
        self.must_not.extend(queries)

    def set_min_should(self, value: int) -> None:
        self.min_should = value

    def is_empty(self) -> bool:
        return not (self.must or self.should or self.must_not)


EngineQuery = Union[
    MatchQuery,
    MatchPhraseQuery,
    TermQuery,
    PrefixQuery,
    FuzzyQuery,
    WildcardQuery,
    RegexpQuery,
    NumericRangeQuery,
    DateRangeQuery,
    QueryStringQuery,
    DocIDQuery,
    ExistsQuery,
    MatchAllQuery,
    MatchNoneQuery,
    BooleanQuery,
]

_QUERY_NAMES: dict[type, str] = {
    MatchQuery: "match",
    MatchPhraseQuery: "match_phrase",
    TermQuery: "term",
    PrefixQuery: "prefix",
    FuzzyQuery: "fuzzy",
    WildcardQuery: "wildcard",
    RegexpQuery: "regexp",
    NumericRangeQuery: "numeric_range",
    DateRangeQuery: "date_range",
    QueryStringQuery: "query_string",
    DocIDQuery: "doc_id",
    ExistsQuery: "exists",
    MatchAllQuery: "match_all",
    MatchNoneQuery: "match_none",
    BooleanQuery: "bool",
}


def effective_boost(query: EngineQuery) -> float:
    """Return the boost the engine applies when scoring ``query``."""
    return DEFAULT_BOOST if query.boost is None else query.boost


def query_name(query: EngineQuery) -> str:
    return _QUERY_NAMES[type(query)]


def query_to_dict(query: EngineQuery) -> dict[str, Any]:
    """Render a query tree as JSON-serializable data, omitting unset attributes.

    Args:
        query: Engine query (possibly a nested boolean tree).

    Returns:
        ``{<query name>: {<attr>: <value>, ...}}``.
    """
    if isinstance(query, BooleanQuery):
        body: dict[str, Any] = {}
        for group in ("must", "should", "must_not"):
            children = getattr(query, group)
            if children:
                body[group] = [query_to_dict(child) for child in children]
        if query.min_should:
            body["min_should"] = query.min_should
        if query.boost is not None:
            body["boost"] = query.boost
        return {"bool": body}

    body = {}
    for key, value in asdict(query).items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        body[key] = value
    return {query_name(query): body}
