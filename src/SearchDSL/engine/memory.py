"""In-process reference engine.

Documents are persisted through `DocumentStore` and held in memory with
per-field token lists. Lexical queries are scored with a length-normalized
tf-idf; k-NN side queries add ``boost * similarity`` to the lexical score of
the same document (documents found only by k-NN get the k-NN part alone).
"""

from __future__ import annotations

import math
import re
import threading
import time
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from functools import cmp_to_key
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from dateutil import parser as dt_parser

from SearchDSL.engine.analysis import edit_distance, field_text, get_analyzer, standard
from SearchDSL.engine.index import SIMILARITIES, IndexMapping
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
)
from SearchDSL.engine.querystring import parse_query_string
from SearchDSL.engine.request import EngineRequest, FacetRequest, KNNRequest
from SearchDSL.engine.result import DocumentMatch, FacetResult, RangeCount, SearchResult, TermCount
from SearchDSL.engine.store import DocumentStore
from SearchDSL.utils.log import log

_HIGHLIGHT_MARKS = {
    "html": ("<mark>", "</mark>"),
    "ansi": ("\x1b[43m", "\x1b[0m"),
}
_FRAGMENT_SIZE = 200
_WORD_RE = re.compile(r"\w+", flags=re.UNICODE)


class MemoryIndex:
    """Reference implementation of the `Index` contract."""

    def __init__(self, store: DocumentStore, mapping: IndexMapping) -> None:
        if mapping.similarity not in SIMILARITIES:
            raise ValueError(f"unknown vector similarity: {mapping.similarity}")
        self.mapping = mapping
        self._store = store
        self._lock = threading.RLock()
        self._docs: dict[str, dict[str, Any]] = {}
        self._tokens: dict[str, dict[str, list[str]]] = {}
        self._df: dict[str, Counter[str]] = defaultdict(Counter)
        for doc_id, body in store.iter_documents():
            self._add(doc_id, body)
        log.debug("Index opened: %s documents=%d", store.db_path, len(self._docs))

    @classmethod
    def open_or_create(cls, path: Path | str, mapping: IndexMapping) -> MemoryIndex:
        """Open the index at ``path``; a new index records ``mapping``."""
        store = DocumentStore(path)
        stored = store.load_mapping()
        if stored is None:
            store.save_mapping(mapping.to_dict())
            log.info("Created index %s", path)
        else:
            existing = IndexMapping.from_dict(stored)
            if existing != mapping:
                log.warning("Index %s keeps its stored mapping %s", path, existing.to_dict())
            mapping = existing
        return cls(store, mapping)

    def index(self, doc_id: str, document: Mapping[str, Any]) -> None:
        body = dict(document)
        vector = body.get(self.mapping.vector_field)
        if vector is not None and len(vector) != self.mapping.dimensions:
            raise ValueError(
                f"document {doc_id!r}: {self.mapping.vector_field} has {len(vector)} dimensions, "
                f"index expects {self.mapping.dimensions}"
            )
        self._store.upsert(doc_id, body)
        with self._lock:
            self._remove(doc_id)
            self._add(doc_id, body)

    def delete(self, doc_id: str) -> bool:
        existed = self._store.delete(doc_id)
        with self._lock:
            self._remove(doc_id)
        return existed

    def document(self, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            body = self._docs.get(doc_id)
            return dict(body) if body is not None else None

    def document_count(self) -> int:
        with self._lock:
            return len(self._docs)

    def close(self) -> None:
        self._store.close()

    def search(self, request: EngineRequest) -> SearchResult:
        """Execute ``request`` against a snapshot of the index.

        Raises:
            ValueError: If the request cannot be executed (bad regexp, unknown
                analyzer, empty highlight field list, k-NN vector of the wrong
                width).
        """
        started = time.perf_counter()
        with self._lock:
            docs = dict(self._docs)
            tokens = dict(self._tokens)
            df = {name: Counter(counts) for name, counts in self._df.items()}

        scorer = _Scorer(docs, tokens, df, self.mapping)
        lexical: dict[str, float] = {}
        for doc_id in docs:
            score = scorer.score(request.query, doc_id)
            if score is not None:
                lexical[doc_id] = score

        knn: dict[str, float] = defaultdict(float)
        for knn_request in request.knn:
            for doc_id, score in self._knn(docs, knn_request):
                knn[doc_id] += score

        scores = dict(lexical)
        for doc_id, score in knn.items():
            scores[doc_id] = scores.get(doc_id, 0.0) + score

        ordered = _sort_hits(scores, docs, request.sort)
        page = ordered[request.from_ : request.from_ + request.size]

        highlighter = None
        if request.highlight is not None:
            if not request.highlight.fields:
                raise ValueError("highlight requires at least one field")
            highlighter = _Highlighter(request.query, request.highlight.style, request.highlight.fields, scorer)

        hits: list[DocumentMatch] = []
        for doc_id in page:
            hit = DocumentMatch(id=doc_id, score=scores[doc_id])
            hit.fields = self._stored_fields(docs[doc_id], request.fields)
            if highlighter is not None:
                hit.fragments = highlighter.fragments(docs[doc_id])
            if request.explain:
                hit.explanation = {
                    "value": scores[doc_id],
                    "message": "sum of:",
                    "children": [
                        {"value": lexical.get(doc_id, 0.0), "message": "lexical query"},
                        {"value": knn.get(doc_id, 0.0), "message": "knn"},
                    ],
                }
            hits.append(hit)

        facets = {
            name: _facet(facet, [docs[doc_id] for doc_id in scores])
            for name, facet in request.facets.items()
        }
        return SearchResult(
            total=len(scores),
            hits=hits,
            max_score=max(scores.values(), default=0.0),
            took=timedelta(seconds=time.perf_counter() - started),
            facets=facets,
        )

    def _add(self, doc_id: str, body: dict[str, Any]) -> None:
        self._docs[doc_id] = body
        per_field: dict[str, list[str]] = {"id": standard(doc_id)}
        for name, value in body.items():
            if name == self.mapping.vector_field or isinstance(value, (int, float, bool)):
                continue
            per_field[name] = standard(field_text(value))
        self._tokens[doc_id] = per_field
        for name, field_tokens in per_field.items():
            self._df[name].update(set(field_tokens))

    def _remove(self, doc_id: str) -> None:
        if doc_id not in self._docs:
            return
        for name, field_tokens in self._tokens.pop(doc_id).items():
            self._df[name].subtract(set(field_tokens))
        del self._docs[doc_id]

    def _knn(self, docs: Mapping[str, dict[str, Any]], request: KNNRequest) -> list[tuple[str, float]]:
        if request.field == self.mapping.vector_field and len(request.vector) != self.mapping.dimensions:
            raise ValueError(
                f"k-NN vector for {request.field!r} has {len(request.vector)} dimensions, "
                f"index expects {self.mapping.dimensions}"
            )
        similarity = _SIMILARITY_FUNCS[self.mapping.similarity]
        scored: list[tuple[str, float]] = []
        for doc_id, body in docs.items():
            vector = body.get(request.field)
            if not isinstance(vector, list) or len(vector) != len(request.vector):
                continue
            scored.append((doc_id, similarity(request.vector, vector)))
        scored.sort(key=lambda item: item[1], reverse=True)
        return [(doc_id, request.boost * score) for doc_id, score in scored[: request.k]]

    def _stored_fields(self, body: Mapping[str, Any], requested: Iterable[str]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in requested:
            if name == "*":
                out.update({k: v for k, v in body.items() if k != self.mapping.vector_field})
            elif name in body:
                out[name] = body[name]
        return out


class _Scorer:
    def __init__(
        self,
        docs: Mapping[str, dict[str, Any]],
        tokens: Mapping[str, dict[str, list[str]]],
        df: Mapping[str, Counter[str]],
        mapping: IndexMapping,
    ) -> None:
        self.docs = docs
        self.tokens = tokens
        self.df = df
        self.mapping = mapping
        self._parsed: dict[int, BooleanQuery] = {}
        self._patterns: dict[str, re.Pattern[str]] = {}

    def score(self, query: EngineQuery, doc_id: str) -> float | None:
        raw = self._raw_score(query, doc_id)
        if raw is None:
            return None
        return raw * effective_boost(query)

    def fields(self, name: str | None) -> tuple[str, ...]:
        return (name,) if name is not None else tuple(self.mapping.text_fields)

    def expand_query_string(self, query: QueryStringQuery) -> BooleanQuery:
        parsed = self._parsed.get(id(query))
        if parsed is None:
            parsed = parse_query_string(query.query, default_field=query.default_field)
            self._parsed[id(query)] = parsed
        return parsed

    def pattern(self, source: str) -> re.Pattern[str]:
        compiled = self._patterns.get(source)
        if compiled is None:
            try:
                compiled = re.compile(source)
            except re.error as exc:
                raise ValueError(f"invalid regular expression {source!r}: {exc}") from exc
            self._patterns[source] = compiled
        return compiled

    def _raw_score(self, query: EngineQuery, doc_id: str) -> float | None:
        if isinstance(query, MatchAllQuery):
            return 1.0
        if isinstance(query, MatchNoneQuery):
            return None
        if isinstance(query, BooleanQuery):
            return self._boolean(query, doc_id)
        if isinstance(query, MatchQuery):
            return self._match(query, doc_id)
        if isinstance(query, MatchPhraseQuery):
            return self._phrase(query, doc_id)
        if isinstance(query, TermQuery):
            return self._terms(query.field, doc_id, lambda t: t == query.term, raw_equals=query.term)
        if isinstance(query, PrefixQuery):
            return self._terms(query.field, doc_id, lambda t: t.startswith(query.prefix))
        if isinstance(query, FuzzyQuery):
            return self._terms(
                query.field,
                doc_id,
                lambda t: _fuzzy_equal(query.term, t, query.fuzziness, query.prefix),
            )
        if isinstance(query, WildcardQuery):
            wildcard = self.pattern(_wildcard_to_regex(query.wildcard))
            return self._terms(query.field, doc_id, lambda t: wildcard.fullmatch(t) is not None)
        if isinstance(query, RegexpQuery):
            regexp = self.pattern(query.regexp)
            return self._terms(query.field, doc_id, lambda t: regexp.fullmatch(t) is not None)
        if isinstance(query, NumericRangeQuery):
            return self._numeric_range(query, doc_id)
        if isinstance(query, DateRangeQuery):
            return self._date_range(query, doc_id)
        if isinstance(query, QueryStringQuery):
            return self.score(self.expand_query_string(query), doc_id)
        if isinstance(query, DocIDQuery):
            return 1.0 if doc_id in query.ids else None
        if isinstance(query, ExistsQuery):
            value = self.docs[doc_id].get(query.field)
            return 1.0 if value not in (None, "", [], {}) else None
        raise ValueError(f"unsupported query type: {type(query).__name__}")

    def _boolean(self, query: BooleanQuery, doc_id: str) -> float | None:
        if query.is_empty():
            return None
        for clause in query.must_not:
            if self.score(clause, doc_id) is not None:
                return None
        total = 0.0
        for clause in query.must:
            score = self.score(clause, doc_id)
            if score is None:
                return None
            total += score
        should_scores = [s for s in (self.score(c, doc_id) for c in query.should) if s is not None]
        min_should = query.min_should
        if not query.must and query.should and min_should == 0:
            min_should = 1
        if len(should_scores) < min_should:
            return None
        total += sum(should_scores)
        if not query.must and not query.should:
            return 1.0
        return total

    def _weight(self, name: str, term: str, field_tokens: list[str]) -> float:
        count = field_tokens.count(term)
        idf = math.log(1.0 + len(self.docs) / (1.0 + self.df.get(name, Counter())[term]))
        return math.sqrt(count) * idf / math.sqrt(len(field_tokens))

    def _terms(
        self,
        field: str | None,
        doc_id: str,
        predicate: Callable[[str], bool],
        *,
        raw_equals: str | None = None,
    ) -> float | None:
        total = 0.0
        matched = False
        doc_tokens = self.tokens[doc_id]
        for name in self.fields(field):
            field_tokens = doc_tokens.get(name, [])
            for term in set(field_tokens):
                if predicate(term):
                    total += self._weight(name, term, field_tokens)
                    matched = True
            if raw_equals is not None and not matched:
                value = self.docs[doc_id].get(name)
                values = value if isinstance(value, list) else [value]
                if any(isinstance(v, str) and v == raw_equals for v in values):
                    total += 1.0
                    matched = True
        return total if matched else None

    def _match(self, query: MatchQuery, doc_id: str) -> float | None:
        analyzer = get_analyzer(query.analyzer)
        query_tokens = analyzer(query.match)
        if not query_tokens:
            return None
        per_token: list[float | None] = []
        for token in query_tokens:
            per_token.append(
                self._terms(
                    query.field,
                    doc_id,
                    lambda t, token=token: _fuzzy_equal(token, t, query.fuzziness, query.prefix),
                )
            )
        hits = [s for s in per_token if s is not None]
        if query.operator == MatchOperator.AND and len(hits) < len(per_token):
            return None
        return sum(hits) if hits else None

    def _phrase(self, query: MatchPhraseQuery, doc_id: str) -> float | None:
        phrase = get_analyzer(query.analyzer)(query.match_phrase)
        if not phrase:
            return None
        doc_tokens = self.tokens[doc_id]
        total = 0.0
        matched = False
        for name in self.fields(query.field):
            field_tokens = doc_tokens.get(name, [])
            if _phrase_matches(field_tokens, phrase, query.slop):
                total += sum(self._weight(name, term, field_tokens) for term in set(phrase))
                matched = True
        return total if matched else None

    def _numeric_range(self, query: NumericRangeQuery, doc_id: str) -> float | None:
        if query.field is None:
            return None
        value = self.docs[doc_id].get(query.field)
        values = value if isinstance(value, list) else [value]
        for item in values:
            if isinstance(item, bool) or not isinstance(item, (int, float)):
                continue
            if _in_range(
                item,
                query.min,
                query.max,
                True if query.inclusive_min is None else query.inclusive_min,
                False if query.inclusive_max is None else query.inclusive_max,
            ):
                return 1.0
        return None

    def _date_range(self, query: DateRangeQuery, doc_id: str) -> float | None:
        if query.field is None:
            return None
        value = self.docs[doc_id].get(query.field)
        values = value if isinstance(value, list) else [value]
        start = _aware(query.start) if query.start else None
        end = _aware(query.end) if query.end else None
        for item in values:
            when = _as_datetime(item)
            if when is None:
                continue
            if _in_range(
                when,
                start,
                end,
                True if query.inclusive_start is None else query.inclusive_start,
                False if query.inclusive_end is None else query.inclusive_end,
            ):
                return 1.0
        return None


class _Highlighter:
    def __init__(self, query: EngineQuery, style: str | None, fields: Iterable[str], scorer: _Scorer) -> None:
        self.open_mark, self.close_mark = _HIGHLIGHT_MARKS.get(style or "html", _HIGHLIGHT_MARKS["html"])
        self.fields = list(fields)
        self.predicates: list[Callable[[str], bool]] = []
        self._collect(query, scorer)

    def fragments(self, body: Mapping[str, Any]) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for name in self.fields:
            text = field_text(body.get(name))
            fragment = self._mark(text)
            if fragment is not None:
                out[name] = [fragment]
        return out

    def _mark(self, text: str) -> str | None:
        spans = [m.span() for m in _WORD_RE.finditer(text) if self._hit(m.group(0).lower())]
        if not spans:
            return None
        window_start = max(0, spans[0][0] - _FRAGMENT_SIZE // 4)
        window_end = min(len(text), window_start + _FRAGMENT_SIZE)
        parts: list[str] = []
        cursor = window_start
        for begin, end in spans:
            if begin < window_start or end > window_end:
                continue
            parts.append(text[cursor:begin])
            parts.append(f"{self.open_mark}{text[begin:end]}{self.close_mark}")
            cursor = end
        parts.append(text[cursor:window_end])
        return "".join(parts)

    def _hit(self, word: str) -> bool:
        return any(predicate(word) for predicate in self.predicates)

    def _collect(self, query: EngineQuery, scorer: _Scorer) -> None:
        if isinstance(query, BooleanQuery):
            for clause in (*query.must, *query.should):
                self._collect(clause, scorer)
        elif isinstance(query, QueryStringQuery):
            self._collect(scorer.expand_query_string(query), scorer)
        elif isinstance(query, MatchQuery):
            for token in get_analyzer(query.analyzer)(query.match):
                self.predicates.append(
                    lambda w, token=token, q=query: _fuzzy_equal(token, w, q.fuzziness, q.prefix)
                )
        elif isinstance(query, MatchPhraseQuery):
            phrase = set(get_analyzer(query.analyzer)(query.match_phrase))
            self.predicates.append(lambda w, phrase=phrase: w in phrase)
        elif isinstance(query, TermQuery):
            self.predicates.append(lambda w, term=query.term: w == term)
        elif isinstance(query, PrefixQuery):
            self.predicates.append(lambda w, prefix=query.prefix: w.startswith(prefix))
        elif isinstance(query, FuzzyQuery):
            self.predicates.append(
                lambda w, q=query: _fuzzy_equal(q.term, w, q.fuzziness, q.prefix)
            )
        elif isinstance(query, WildcardQuery):
            pattern = scorer.pattern(_wildcard_to_regex(query.wildcard))
            self.predicates.append(lambda w, pattern=pattern: pattern.fullmatch(w) is not None)
        elif isinstance(query, RegexpQuery):
            pattern = scorer.pattern(query.regexp)
            self.predicates.append(lambda w, pattern=pattern: pattern.fullmatch(w) is not None)


def _fuzzy_equal(expected: str, candidate: str, fuzziness: int, prefix: int) -> bool:
    if fuzziness <= 0:
        return expected == candidate
    if prefix and candidate[:prefix] != expected[:prefix]:
        return False
    return edit_distance(expected, candidate, fuzziness) <= fuzziness


def _phrase_matches(field_tokens: list[str], phrase: list[str], slop: int) -> bool:
    positions: dict[str, list[int]] = defaultdict(list)
    for pos, term in enumerate(field_tokens):
        positions[term].append(pos)
    for start in positions.get(phrase[0], []):
        last = start
        for term in phrase[1:]:
            following = [pos for pos in positions.get(term, []) if pos > last]
            if not following:
                break
            last = following[0]
        else:
            if (last - start) - (len(phrase) - 1) <= slop:
                return True
    return False


def _wildcard_to_regex(wildcard: str) -> str:
    out: list[str] = []
    escaped = False
    for char in wildcard:
        if escaped:
            out.append(re.escape(char))
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "*":
            out.append(".*")
        elif char == "?":
            out.append(".")
        else:
            out.append(re.escape(char))
    return "".join(out)


def _in_range(value: Any, low: Any, high: Any, inclusive_low: bool, inclusive_high: bool) -> bool:
    if low is not None and (value < low or (value == low and not inclusive_low)):
        return False
    if high is not None and (value > high or (value == high and not inclusive_high)):
        return False
    return True


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, str) and value:
        try:
            return _aware(dt_parser.isoparse(value))
        except ValueError:
            return None
    return None


def _cosine(a: Iterable[float], b: Iterable[float]) -> float:
    a, b = list(a), list(b)
    numerator = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)


def _dot(a: Iterable[float], b: Iterable[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


def _l2(a: Iterable[float], b: Iterable[float]) -> float:
    distance = math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))
    return 1.0 / (1.0 + distance)


_SIMILARITY_FUNCS: dict[str, Callable[[Iterable[float], Iterable[float]], float]] = {
    "cosine": _cosine,
    "dot_product": _dot,
    "l2_norm": _l2,
}


def _sort_hits(scores: Mapping[str, float], docs: Mapping[str, dict[str, Any]], keys: list[str]) -> list[str]:
    """Order matching document ids by the composite sort ``keys``.

    Documents missing a sort field come after those that have it, in either
    direction. Ties fall back to document id.
    """
    parsed = [(key.lstrip("-"), key.startswith("-")) for key in keys or ["-_score"]]

    def value_of(doc_id: str, name: str) -> Any:
        if name == "_score":
            return scores[doc_id]
        if name == "_id":
            return doc_id
        value = docs[doc_id].get(name)
        if isinstance(value, list):
            value = value[0] if value else None
        return value

    def compare(a: str, b: str) -> int:
        for name, desc in parsed:
            va, vb = value_of(a, name), value_of(b, name)
            if va is None or vb is None:
                if va is None and vb is None:
                    continue
                return 1 if va is None else -1
            if type(va) is not type(vb) and not (
                isinstance(va, (int, float)) and isinstance(vb, (int, float))
            ):
                va, vb = str(va), str(vb)
            if va == vb:
                continue
            result = -1 if va < vb else 1
            return -result if desc else result
        return (a > b) - (a < b)

    return sorted(scores, key=cmp_to_key(compare))


def _facet(facet: FacetRequest, bodies: list[dict[str, Any]]) -> FacetResult:
    result = FacetResult(field=facet.field)
    counts: Counter[str] = Counter()
    numeric = [0] * len(facet.numeric_ranges)
    dated = [0] * len(facet.date_ranges)
    for body in bodies:
        value = body.get(facet.field)
        if value in (None, "", []):
            result.missing += 1
            continue
        values = value if isinstance(value, list) else [value]
        result.total += len(values)
        for item in values:
            counts[str(item)] += 1
            for idx, bucket in enumerate(facet.numeric_ranges):
                if isinstance(item, (int, float)) and not isinstance(item, bool):
                    if _in_range(item, bucket.min, bucket.max, True, False):
                        numeric[idx] += 1
            when = _as_datetime(item) if facet.date_ranges else None
            if when is not None:
                for idx, bucket in enumerate(facet.date_ranges):
                    start = _aware(bucket.start) if bucket.start else None
                    end = _aware(bucket.end) if bucket.end else None
                    if _in_range(when, start, end, True, False):
                        dated[idx] += 1

    if facet.numeric_ranges:
        result.ranges = [
            RangeCount(name=bucket.name, count=numeric[idx], min=bucket.min, max=bucket.max)
            for idx, bucket in enumerate(facet.numeric_ranges)
        ]
    elif facet.date_ranges:
        result.ranges = [
            RangeCount(
                name=bucket.name,
                count=dated[idx],
                min=bucket.start.isoformat() if bucket.start else None,
                max=bucket.end.isoformat() if bucket.end else None,
            )
            for idx, bucket in enumerate(facet.date_ranges)
        ]
    else:
        top = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[: facet.size]
        result.terms = [TermCount(term=term, count=count) for term, count in top]
        result.other = result.total - sum(count for _, count in top)
    return result
