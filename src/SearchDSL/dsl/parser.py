"""Decode YAML/JSON search documents into the query model.

A clause is a mapping with exactly one key, the clause kind, whose value is
the kind's attribute mapping::

    query:
      bool:
        must:
          - match: {field: content, value: fox, boost: 2}
        should:
          - vector: {field: vector, text: quick animals, model: all-minilm, k: 5}
    options:
      size: 5
      sort: [{field: _score, desc: true}]

Decoding errors carry the dotted path of the offending value, e.g.
``query.bool.must[1].term.field must be a string``.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Mapping

import yaml

from SearchDSL.config.common import (
    expect_bool,
    expect_float,
    expect_float_list,
    expect_int,
    expect_list,
    expect_mapping,
    expect_str,
    expect_str_list,
)
from SearchDSL.core.errors import UnsupportedClause, ValidationError
from SearchDSL.core.query import (
    CLAUSE_TYPES,
    BoolClause,
    FacetRange,
    FacetSpec,
    Highlight,
    QueryClause,
    SearchOptions,
    SearchRequest,
    SortOption,
)

HIGHLIGHT_STYLES = ("html", "ansi")
FACET_TYPES = ("terms", "numeric_range", "date_range")
DEFAULT_FACET_SIZE = 10

Checker = Callable[[Any, str], Any]


def _scalar_str(value: Any, key: str) -> str:
    # YAML turns unquoted 2024 or 1.5 into numbers; clause values are text.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return expect_str(value, key)


def _timestamp(value: Any, key: str) -> str:
    # YAML resolves unquoted timestamps to datetime/date; keep them as text.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return expect_str(value, key)


def _ids(value: Any, key: str) -> tuple[str, ...]:
    return tuple(_scalar_str(item, f"{key}[{idx}]") for idx, item in enumerate(expect_list(value, key)))


def _vector(value: Any, key: str) -> tuple[float, ...]:
    return tuple(expect_float_list(value, key))


# kind -> {attribute: (checker, required)}; `bool` groups are decoded separately.
_ATTRS: dict[str, dict[str, tuple[Checker, bool]]] = {
    "match": {
        "field": (expect_str, True),
        "value": (_scalar_str, True),
        "boost": (expect_float, False),
        "operator": (expect_str, False),
        "fuzziness": (expect_int, False),
        "prefix_length": (expect_int, False),
        "analyzer": (expect_str, False),
    },
    "match_phrase": {
        "field": (expect_str, True),
        "value": (_scalar_str, True),
        "boost": (expect_float, False),
        "slop": (expect_int, False),
        "analyzer": (expect_str, False),
    },
    "term": {"field": (expect_str, True), "value": (_scalar_str, True), "boost": (expect_float, False)},
    "prefix": {"field": (expect_str, True), "value": (_scalar_str, True), "boost": (expect_float, False)},
    "fuzzy": {
        "field": (expect_str, True),
        "value": (_scalar_str, True),
        "boost": (expect_float, False),
        "fuzziness": (expect_int, False),
        "prefix_length": (expect_int, False),
    },
    "wildcard": {"field": (expect_str, True), "value": (_scalar_str, True), "boost": (expect_float, False)},
    "regexp": {"field": (expect_str, True), "value": (expect_str, True), "boost": (expect_float, False)},
    "numeric_range": {
        "field": (expect_str, True),
        "min": (expect_float, False),
        "max": (expect_float, False),
        "inclusive_min": (expect_bool, False),
        "inclusive_max": (expect_bool, False),
        "boost": (expect_float, False),
    },
    "date_range": {
        "field": (expect_str, True),
        "start": (_timestamp, False),
        "end": (_timestamp, False),
        "inclusive_start": (expect_bool, False),
        "inclusive_end": (expect_bool, False),
        "boost": (expect_float, False),
    },
    "query_string": {
        "query": (expect_str, True),
        "default_field": (expect_str, False),
        "boost": (expect_float, False),
    },
    "doc_id": {"ids": (_ids, True)},
    "exists": {"field": (expect_str, True)},
    "vector": {
        "field": (expect_str, True),
        "k": (expect_int, True),
        "model": (expect_str, True),
        "text": (expect_str, False),
        "vector": (_vector, False),
        "boost": (expect_float, False),
    },
}

_BOOL_GROUPS = ("must", "should", "must_not")


def _check(checker: Checker, value: Any, key: str) -> Any:
    try:
        return checker(value, key)
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc)) from exc


def _reject_unknown(raw: Mapping[str, Any], allowed: Any, path: str) -> None:
    unknown = sorted(str(key) for key in raw if key not in allowed)
    if unknown:
        raise ValidationError(f"{path}: unknown key(s) {', '.join(unknown)}")


def parse_search_document(text: str) -> SearchRequest:
    """Decode a YAML (or JSON) search document.

    Raises:
        ValidationError: On invalid YAML or a malformed document.
        UnsupportedClause: On an empty clause or an unknown clause kind.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValidationError(f"invalid YAML: {exc}") from exc
    if raw is None:
        raise ValidationError("empty search document")
    return parse_search_request(raw)


def parse_search_request(raw: Any) -> SearchRequest:
    """Decode an already loaded search document mapping."""
    raw = _check(expect_mapping, raw, "document")
    _reject_unknown(raw, ("query", "options", "facets"), "document")
    if raw.get("query") is None:
        raise ValidationError("Missing required key: query")
    query = parse_clause(raw["query"], "query")
    options = parse_options(raw["options"]) if raw.get("options") is not None else None
    facets = parse_facets(raw["facets"]) if raw.get("facets") is not None else {}
    return SearchRequest(query=query, options=options, facets=facets)


def parse_clause(raw: Any, path: str = "query") -> QueryClause:
    """Decode one clause mapping (recursively for ``bool``).

    Raises:
        ValidationError: If the clause has more than one kind or a bad attribute.
        UnsupportedClause: If the clause is empty or its kind is unknown.
    """
    raw = _check(expect_mapping, raw, path)
    if not raw:
        raise UnsupportedClause(f"{path}: empty clause, expected one of {', '.join(CLAUSE_TYPES)}")
    if len(raw) > 1:
        raise ValidationError(f"{path}: clause must have exactly one kind, got {', '.join(map(str, raw))}")

    kind, body = next(iter(raw.items()))
    if kind not in CLAUSE_TYPES:
        raise UnsupportedClause(f"{path}: unsupported clause kind {kind!r}")
    body_path = f"{path}.{kind}"
    body = {} if body is None else _check(expect_mapping, body, body_path)

    if kind == "bool":
        return QueryClause.of(_parse_bool(body, body_path))

    attrs = _ATTRS[kind]
    _reject_unknown(body, attrs, body_path)
    kwargs: dict[str, Any] = {}
    for name, (checker, required) in attrs.items():
        value = body.get(name)
        if value is None:
            if required:
                raise ValidationError(f"Missing required key: {body_path}.{name}")
            continue
        kwargs[name] = _check(checker, value, f"{body_path}.{name}")
    return QueryClause.of(CLAUSE_TYPES[kind](**kwargs))


def _parse_bool(body: Mapping[str, Any], path: str) -> BoolClause:
    _reject_unknown(body, (*_BOOL_GROUPS, "minimum_should_match", "boost"), path)
    groups: dict[str, tuple[QueryClause, ...]] = {}
    for group in _BOOL_GROUPS:
        children = body.get(group)
        if children is None:
            groups[group] = ()
            continue
        children = _check(expect_list, children, f"{path}.{group}")
        groups[group] = tuple(
            parse_clause(child, f"{path}.{group}[{idx}]") for idx, child in enumerate(children)
        )
    min_should = body.get("minimum_should_match")
    boost = body.get("boost")
    return BoolClause(
        must=groups["must"],
        should=groups["should"],
        must_not=groups["must_not"],
        minimum_should_match=None
        if min_should is None
        else _check(expect_int, min_should, f"{path}.minimum_should_match"),
        boost=None if boost is None else _check(expect_float, boost, f"{path}.boost"),
    )


def parse_options(raw: Any) -> SearchOptions:
    """Decode the ``options`` block; ``from`` maps to ``from_``."""
    raw = _check(expect_mapping, raw, "options")
    _reject_unknown(raw, ("size", "from", "explain", "fields", "sort", "highlight"), "options")

    size = _non_negative(raw.get("size", 0), "options.size")
    offset = _non_negative(raw.get("from", 0), "options.from")
    explain = _check(expect_bool, raw.get("explain", False), "options.explain")
    fields = tuple(_check(expect_str_list, raw.get("fields") or [], "options.fields"))

    sort: list[SortOption] = []
    for idx, entry in enumerate(_check(expect_list, raw.get("sort") or [], "options.sort")):
        key = f"options.sort[{idx}]"
        entry = _check(expect_mapping, entry, key)
        _reject_unknown(entry, ("field", "desc"), key)
        if entry.get("field") is None:
            raise ValidationError(f"Missing required key: {key}.field")
        sort.append(
            SortOption(
                field=_check(expect_str, entry["field"], f"{key}.field"),
                desc=_check(expect_bool, entry.get("desc", False), f"{key}.desc"),
            )
        )

    highlight = None
    if raw.get("highlight") is not None:
        block = _check(expect_mapping, raw["highlight"], "options.highlight")
        _reject_unknown(block, ("style", "fields"), "options.highlight")
        style = block.get("style")
        if style is not None:
            style = _check(expect_str, style, "options.highlight.style")
            if style not in HIGHLIGHT_STYLES:
                raise ValidationError(f"options.highlight.style must be one of {list(HIGHLIGHT_STYLES)}")
        highlight = Highlight(
            style=style,
            fields=tuple(_check(expect_str_list, block.get("fields") or [], "options.highlight.fields")),
        )

    return SearchOptions(
        size=size,
        from_=offset,
        explain=explain,
        fields=fields,
        sort=tuple(sort),
        highlight=highlight,
    )


def parse_facets(raw: Any) -> dict[str, FacetSpec]:
    raw = _check(expect_mapping, raw, "facets")
    facets: dict[str, FacetSpec] = {}
    for name, block in raw.items():
        path = f"facets.{name}"
        block = _check(expect_mapping, block, path)
        _reject_unknown(block, ("type", "field", "size", "ranges"), path)
        for required in ("type", "field"):
            if block.get(required) is None:
                raise ValidationError(f"Missing required key: {path}.{required}")
        facet_type = _check(expect_str, block["type"], f"{path}.type")
        if facet_type not in FACET_TYPES:
            raise ValidationError(f"{path}.type must be one of {list(FACET_TYPES)}")
        size = _check(expect_int, block.get("size") or DEFAULT_FACET_SIZE, f"{path}.size")
        if size < 0:
            raise ValidationError(f"{path}.size must be >= 0")

        ranges: list[FacetRange] = []
        for idx, entry in enumerate(_check(expect_list, block.get("ranges") or [], f"{path}.ranges")):
            key = f"{path}.ranges[{idx}]"
            entry = _check(expect_mapping, entry, key)
            _reject_unknown(entry, ("name", "min", "max", "start", "end"), key)
            if entry.get("name") is None:
                raise ValidationError(f"Missing required key: {key}.name")
            ranges.append(
                FacetRange(
                    name=_check(_scalar_str, entry["name"], f"{key}.name"),
                    min=_optional(expect_float, entry.get("min"), f"{key}.min"),
                    max=_optional(expect_float, entry.get("max"), f"{key}.max"),
                    start=_optional(_timestamp, entry.get("start"), f"{key}.start"),
                    end=_optional(_timestamp, entry.get("end"), f"{key}.end"),
                )
            )
        if facet_type != "terms" and not ranges:
            raise ValidationError(f"{path}.ranges must not be empty for {facet_type} facets")

        facets[str(name)] = FacetSpec(
            type=facet_type,
            field=_check(expect_str, block["field"], f"{path}.field"),
            size=size,
            ranges=tuple(ranges),
        )
    return facets


def _optional(checker: Checker, value: Any, key: str) -> Any:
    return None if value is None else _check(checker, value, key)


def _non_negative(value: Any, key: str) -> int:
    value = _check(expect_int, value, key)
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    return value
