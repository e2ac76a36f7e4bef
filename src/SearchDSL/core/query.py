"""Declarative query model.

A `QueryClause` is one node of the query tree. It is a tagged union: the
``kind`` discriminant names the variant and ``body`` holds that variant's
attributes. Only `BoolClause` is recursive; its groups hold full
`QueryClause` values, so trees nest to any depth.

Optional numeric parameters use ``None`` for "not set". Boost additionally
treats ``0`` as "not set" so documents written for the YAML DSL keep their
meaning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence, Union


@dataclass(frozen=True, slots=True)
class MatchClause:
    field: str
    value: str
    boost: float | None = None
    operator: str | None = None
    fuzziness: int | None = None
    prefix_length: int | None = None
    analyzer: str | None = None


@dataclass(frozen=True, slots=True)
class MatchPhraseClause:
    field: str
    value: str
    boost: float | None = None
    slop: int | None = None
    analyzer: str | None = None


@dataclass(frozen=True, slots=True)
class TermClause:
    field: str
    value: str
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class PrefixClause:
    field: str
    value: str
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class FuzzyClause:
    field: str
    value: str
    boost: float | None = None
    fuzziness: int | None = None
    prefix_length: int | None = None


@dataclass(frozen=True, slots=True)
class WildcardClause:
    field: str
    value: str
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class RegexpClause:
    field: str
    value: str
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class NumericRangeClause:
    field: str
    min: float | None = None
    max: float | None = None
    inclusive_min: bool | None = None
    inclusive_max: bool | None = None
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class DateRangeClause:
    """Date range over RFC-3339 timestamps; bounds stay strings until compiled."""

    field: str
    start: str | None = None
    end: str | None = None
    inclusive_start: bool | None = None
    inclusive_end: bool | None = None
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class QueryStringClause:
    query: str
    default_field: str | None = None
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class DocIDClause:
    ids: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class ExistsClause:
    field: str


@dataclass(frozen=True, slots=True)
class VectorClause:
    """k-NN clause; exactly one of ``text`` or ``vector`` must be given."""

    field: str
    k: int
    model: str
    text: str | None = None
    vector: Sequence[float] | None = None
    boost: float | None = None


@dataclass(frozen=True, slots=True)
class BoolClause:
    must: Sequence[QueryClause] = ()
    should: Sequence[QueryClause] = ()
    must_not: Sequence[QueryClause] = ()
    minimum_should_match: int | None = None
    boost: float | None = None


ClauseBody = Union[
    MatchClause,
    MatchPhraseClause,
    TermClause,
    PrefixClause,
    FuzzyClause,
    WildcardClause,
    RegexpClause,
    NumericRangeClause,
    DateRangeClause,
    QueryStringClause,
    DocIDClause,
    ExistsClause,
    VectorClause,
    BoolClause,
]

# Discriminant -> body type. Key order is the order kinds are documented in.
CLAUSE_TYPES: Mapping[str, type] = MappingProxyType(
    {
        "match": MatchClause,
        "match_phrase": MatchPhraseClause,
        "term": TermClause,
        "prefix": PrefixClause,
        "fuzzy": FuzzyClause,
        "wildcard": WildcardClause,
        "regexp": RegexpClause,
        "numeric_range": NumericRangeClause,
        "date_range": DateRangeClause,
        "query_string": QueryStringClause,
        "doc_id": DocIDClause,
        "exists": ExistsClause,
        "vector": VectorClause,
        "bool": BoolClause,
    }
)

_KIND_BY_TYPE = {body_type: kind for kind, body_type in CLAUSE_TYPES.items()}


@dataclass(frozen=True, slots=True)
class QueryClause:
    """One node of the query tree.

    Attributes:
        kind: Variant discriminant, a key of `CLAUSE_TYPES`.
        body: Variant attributes. Its type must be ``CLAUSE_TYPES[kind]``;
            the compiler rejects mismatches as unsupported.
    """

    kind: str
    body: ClauseBody

    @classmethod
    def of(cls, body: ClauseBody) -> QueryClause:
        """Wrap a variant body, deriving the discriminant from its type.

        Raises:
            TypeError: If ``body`` is not a known clause variant.
        """
        kind = _KIND_BY_TYPE.get(type(body))
        if kind is None:
            raise TypeError(f"not a query clause variant: {type(body).__name__}")
        return cls(kind=kind, body=body)


@dataclass(frozen=True, slots=True)
class SortOption:
    field: str
    desc: bool = False


@dataclass(frozen=True, slots=True)
class Highlight:
    style: str | None = None
    fields: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Execution options applied after the query tree is compiled.

    Attributes:
        size: Maximum number of hits; 0 leaves the engine default.
        from_: Offset of the first hit; 0 leaves the engine default.
        explain: Ask the engine for score explanations.
        fields: Stored fields to return; empty means engine default.
        sort: Composite sort key, primary first.
        highlight: Highlighting request, if any.
    """

    size: int = 0
    from_: int = 0
    explain: bool = False
    fields: Sequence[str] = ()
    sort: Sequence[SortOption] = ()
    highlight: Highlight | None = None


@dataclass(frozen=True, slots=True)
class FacetRange:
    name: str
    min: float | None = None
    max: float | None = None
    start: str | None = None
    end: str | None = None


@dataclass(frozen=True, slots=True)
class FacetSpec:
    """Facet declaration; executed by the engine, not by the compiler."""

    type: str
    field: str
    size: int = 10
    ranges: Sequence[FacetRange] = ()


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """One decoded search document: root clause, options and facets."""

    query: QueryClause
    options: SearchOptions | None = None
    facets: Mapping[str, FacetSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "facets", MappingProxyType(dict(self.facets)))
