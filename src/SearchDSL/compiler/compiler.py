"""Query compiler: declarative clause tree -> engine query.

Vector clauses are not boolean-composable in the engine. Wherever they sit
under ``must``/``should`` chains they are lifted out of the boolean tree and
emitted as k-NN side requests; the engine fuses their similarity into the
lexical score of the enclosing request.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol, Sequence

from dateutil import parser as dt_parser

from SearchDSL.core.errors import (
    AmbiguousVectorInput,
    EmbeddingFailed,
    EmptyIDList,
    EmptyRange,
    InvalidDate,
    InvalidK,
    InvalidOperator,
    InvalidParameter,
    MaxDepthExceeded,
    QueryError,
    UnsupportedClause,
    ValidationError,
    VectorDimensionMismatch,
)
from SearchDSL.core.query import (
    CLAUSE_TYPES,
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
    VectorClause,
    WildcardClause,
)
from SearchDSL.embeddings.client import ProviderError
from SearchDSL.engine.query import (
    BooleanQuery,
    DateRangeQuery,
    DocIDQuery,
    EngineQuery,
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
    query_name,
)
from SearchDSL.engine.request import KNNRequest
from SearchDSL.utils.log import log

DEFAULT_MAX_DEPTH = 32
MAX_FUZZINESS = 2

_GROUPS = ("must", "should", "must_not")


class Embedder(Protocol):
    """What the compiler needs from an embedding client."""

    model: str

    def embed(self, text: str) -> list[float]:
        raise NotImplementedError

    def get_dimensions(self) -> int | None:
        raise NotImplementedError

    def for_model(self, model: str) -> Embedder:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """Compilation output.

    Attributes:
        query: Lexical part of the tree. `MatchNoneQuery` when the tree has
            no lexical clause, so hits come from the k-NN side only.
        knn: k-NN side requests lifted out of the tree, in clause order.
    """

    query: EngineQuery
    knn: tuple[KNNRequest, ...] = ()


@dataclass(slots=True)
class _Scope:
    depth: int
    boost: float
    negated: bool
    knn: list[KNNRequest]


def _boost(value: float | None) -> float | None:
    # 0 is accepted as "unset".
    if value is None or value == 0:
        return None
    return float(value)


class QueryCompiler:
    """Compiles `QueryClause` trees into engine queries.

    The compiler holds no per-request state and may be shared between
    threads. Its only collaborator is the embedding client, used when a
    vector clause carries text instead of a vector.
    """

    def __init__(self, embedder: Embedder | None = None, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self.embedder = embedder
        self.max_depth = max_depth
        self._handlers: dict[type, Callable[..., EngineQuery | None]] = {
            MatchClause: self._match,
            MatchPhraseClause: self._match_phrase,
            TermClause: self._term,
            PrefixClause: self._prefix,
            FuzzyClause: self._fuzzy,
            WildcardClause: self._wildcard,
            RegexpClause: self._regexp,
            NumericRangeClause: self._numeric_range,
            DateRangeClause: self._date_range,
            QueryStringClause: self._query_string,
            DocIDClause: self._doc_id,
            ExistsClause: self._exists,
            VectorClause: self._vector,
            BoolClause: self._bool,
        }

    def compile(self, clause: QueryClause) -> CompiledQuery:
        """Compile one clause tree.

        Args:
            clause: Root of the tree.

        Returns:
            The lexical engine query plus lifted k-NN requests.

        Raises:
            QueryError: The first failure found, depth first in clause order.
                Failures below a boolean clause carry their location in
                ``position``.
        """
        scope = _Scope(depth=0, boost=1.0, negated=False, knn=[])
        query = self._compile(clause, scope)
        if query is None:
            query = MatchNoneQuery()
        log.debug(
            "Compiled %s clause: lexical=%s knn=%d",
            getattr(clause, "kind", "?"),
            query_name(query),
            len(scope.knn),
        )
        return CompiledQuery(query=query, knn=tuple(scope.knn))

    def _compile(self, clause: QueryClause, scope: _Scope) -> EngineQuery | None:
        if not isinstance(clause, QueryClause):
            raise UnsupportedClause(f"not a query clause: {type(clause).__name__}")
        expected = CLAUSE_TYPES.get(clause.kind)
        if expected is None:
            raise UnsupportedClause(f"unsupported clause kind: {clause.kind!r}")
        if type(clause.body) is not expected:
            raise UnsupportedClause(
                f"clause kind {clause.kind!r} does not match body {type(clause.body).__name__}"
            )
        return self._handlers[expected](clause.body, scope)

    def _embedder_for(self, model: str) -> Embedder | None:
        if self.embedder is None or model == self.embedder.model:
            return self.embedder
        return self.embedder.for_model(model)

    def _match(self, body: MatchClause, scope: _Scope) -> EngineQuery:
        if body.operator is None:
            operator = MatchOperator.OR
        elif body.operator in ("and", "or"):
            operator = MatchOperator(body.operator)
        else:
            raise InvalidOperator(f"invalid operator {body.operator!r}: must be 'and' or 'or'")
        _non_negative(body.fuzziness, "fuzziness")
        _non_negative(body.prefix_length, "prefix_length")
        return MatchQuery(
            match=body.value,
            field=body.field,
            boost=_boost(body.boost),
            operator=operator,
            fuzziness=body.fuzziness or 0,
            prefix=body.prefix_length or 0,
            analyzer=body.analyzer,
        )

    def _match_phrase(self, body: MatchPhraseClause, scope: _Scope) -> EngineQuery:
        _non_negative(body.slop, "slop")
        return MatchPhraseQuery(
            match_phrase=body.value,
            field=body.field,
            boost=_boost(body.boost),
            slop=body.slop or 0,
            analyzer=body.analyzer,
        )

    def _term(self, body: TermClause, scope: _Scope) -> EngineQuery:
        return TermQuery(term=body.value, field=body.field, boost=_boost(body.boost))

    def _prefix(self, body: PrefixClause, scope: _Scope) -> EngineQuery:
        return PrefixQuery(prefix=body.value, field=body.field, boost=_boost(body.boost))

    def _fuzzy(self, body: FuzzyClause, scope: _Scope) -> EngineQuery:
        _non_negative(body.fuzziness, "fuzziness")
        _non_negative(body.prefix_length, "prefix_length")
        fuzziness = 1 if body.fuzziness is None else body.fuzziness
        if fuzziness > MAX_FUZZINESS:
            raise InvalidParameter(f"fuzziness must be <= {MAX_FUZZINESS}, got {fuzziness}")
        return FuzzyQuery(
            term=body.value,
            field=body.field,
            boost=_boost(body.boost),
            fuzziness=fuzziness,
            prefix=body.prefix_length or 0,
        )

    def _wildcard(self, body: WildcardClause, scope: _Scope) -> EngineQuery:
        return WildcardQuery(wildcard=body.value, field=body.field, boost=_boost(body.boost))

    def _regexp(self, body: RegexpClause, scope: _Scope) -> EngineQuery:
        try:
            re.compile(body.value)
        except re.error as exc:
            raise InvalidParameter(f"invalid regular expression {body.value!r}: {exc}") from exc
        return RegexpQuery(regexp=body.value, field=body.field, boost=_boost(body.boost))

    def _numeric_range(self, body: NumericRangeClause, scope: _Scope) -> EngineQuery:
        if body.min is None and body.max is None:
            raise EmptyRange(f"numeric range on {body.field!r} needs min or max")
        if body.min is not None and body.max is not None and body.min > body.max:
            raise InvalidParameter(f"numeric range on {body.field!r}: min {body.min} > max {body.max}")
        return NumericRangeQuery(
            field=body.field,
            min=None if body.min is None else float(body.min),
            max=None if body.max is None else float(body.max),
            inclusive_min=body.inclusive_min,
            inclusive_max=body.inclusive_max,
            boost=_boost(body.boost),
        )

    def _date_range(self, body: DateRangeClause, scope: _Scope) -> EngineQuery:
        if not body.start and not body.end:
            raise EmptyRange(f"date range on {body.field!r} needs start or end")
        start = _parse_date(body.start, "start") if body.start else None
        end = _parse_date(body.end, "end") if body.end else None
        if start is not None and end is not None and start > end:
            raise InvalidParameter(f"date range on {body.field!r}: start is after end")
        return DateRangeQuery(
            field=body.field,
            start=start,
            end=end,
            inclusive_start=body.inclusive_start,
            inclusive_end=body.inclusive_end,
            boost=_boost(body.boost),
        )

    def _query_string(self, body: QueryStringClause, scope: _Scope) -> EngineQuery:
        return QueryStringQuery(query=body.query, default_field=body.default_field, boost=_boost(body.boost))

    def _doc_id(self, body: DocIDClause, scope: _Scope) -> EngineQuery:
        if not body.ids:
            raise EmptyIDList("doc_id requires at least one id")
        return DocIDQuery(ids=list(body.ids))

    def _exists(self, body: ExistsClause, scope: _Scope) -> EngineQuery:
        return ExistsQuery(field=body.field)

    def _vector(self, body: VectorClause, scope: _Scope) -> None:
        if scope.negated:
            raise ValidationError("vector clause cannot be used under must_not")
        has_text = body.text is not None
        has_vector = body.vector is not None
        if has_text == has_vector:
            raise AmbiguousVectorInput("vector clause needs exactly one of text or vector")
        if has_text and not body.text.strip():
            raise InvalidParameter("vector text must not be empty")
        if has_vector and not body.vector:
            raise InvalidParameter("vector must not be empty")
        if body.k <= 0:
            raise InvalidK(f"k must be > 0, got {body.k}")

        embedder = self._embedder_for(body.model)
        if has_text:
            if embedder is None:
                raise EmbeddingFailed("failed to generate vector embedding: no embedding client configured")
            try:
                vector = embedder.embed(body.text)
            except ProviderError as exc:
                raise EmbeddingFailed(f"failed to generate vector embedding: {exc}") from exc
        else:
            vector = [float(v) for v in body.vector]
        # Provider output is held to the same width as a caller-supplied vector.
        expected = embedder.get_dimensions() if embedder is not None else None
        if expected is not None and len(vector) != expected:
            raise VectorDimensionMismatch(
                field=body.field, model=body.model, expected=expected, actual=len(vector)
            )

        boost = (_boost(body.boost) or 1.0) * scope.boost
        scope.knn.append(KNNRequest(field=body.field, vector=tuple(vector), k=body.k, boost=boost))
        return None

    def _bool(self, body: BoolClause, scope: _Scope) -> EngineQuery | None:
        if scope.depth >= self.max_depth:
            raise MaxDepthExceeded(f"boolean nesting exceeds max depth {self.max_depth}")
        _non_negative(body.minimum_should_match, "minimum_should_match")

        boost = _boost(body.boost)
        query = BooleanQuery(boost=boost)
        adders = {"must": query.add_must, "should": query.add_should, "must_not": query.add_must_not}
        hoisted_should = 0
        for group in _GROUPS:
            children: Sequence[QueryClause] = getattr(body, group)
            child_scope = _Scope(
                depth=scope.depth + 1,
                boost=scope.boost * (boost or 1.0),
                negated=scope.negated or group == "must_not",
                knn=scope.knn,
            )
            for index, child in enumerate(children):
                try:
                    compiled = self._compile(child, child_scope)
                except QueryError as exc:
                    exc.at(group, index, getattr(child, "kind", type(child).__name__))
                    raise
                if compiled is not None:
                    adders[group](compiled)
                elif group == "should":
                    hoisted_should += 1

        if body.minimum_should_match:
            # Hoisted k-NN clauses no longer count towards the lexical minimum.
            min_should = body.minimum_should_match - hoisted_should
            if hoisted_should:
                log.debug(
                    "minimum_should_match %d lowered by %d hoisted vector clauses",
                    body.minimum_should_match,
                    hoisted_should,
                )
            if min_should > 0:
                query.set_min_should(min_should)

        if query.is_empty():
            return None
        return query


def _non_negative(value: int | None, name: str) -> None:
    if value is not None and value < 0:
        raise InvalidParameter(f"{name} must be >= 0, got {value}")


def _parse_date(value: str, bound: str) -> datetime:
    try:
        parsed = dt_parser.isoparse(value)
    except (ValueError, OverflowError) as exc:
        raise InvalidDate(f"invalid {bound} date {value!r}: {exc}", field=bound) from exc
    if parsed.tzinfo is None:
        raise InvalidDate(f"invalid {bound} date {value!r}: missing timezone offset", field=bound)
    return parsed
