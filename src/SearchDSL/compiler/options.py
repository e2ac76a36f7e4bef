"""Map declarative search options and facets onto an engine request."""

from __future__ import annotations

from typing import Mapping

from dateutil import parser as dt_parser

from SearchDSL.core.errors import InvalidDate, ValidationError
from SearchDSL.core.query import FacetSpec, SearchOptions
from SearchDSL.engine.request import (
    DateRangeBucket,
    EngineRequest,
    FacetRequest,
    HighlightRequest,
    NumericRangeBucket,
)


def sort_keys(options: SearchOptions) -> list[str]:
    """Render sort entries as engine sort tokens, primary key first.

    ``_score`` always sorts by descending relevance; other fields take a
    ``-`` prefix when descending.
    """
    keys: list[str] = []
    for entry in options.sort:
        if entry.field == "_score":
            keys.append("-_score")
        elif entry.desc:
            keys.append(f"-{entry.field}")
        else:
            keys.append(entry.field)
    return keys


def apply_search_options(request: EngineRequest, options: SearchOptions | None) -> None:
    """Apply ``options`` to ``request`` in place; ``None`` is a no-op.

    ``size`` and ``from_`` of 0 mean "unset" and leave the engine defaults,
    so a caller cannot ask for zero hits through this path. An empty
    ``fields`` keeps the engine's default field set. A highlight block always
    enables highlighting with its field list as given, empty or not.
    """
    if options is None:
        return
    if options.size > 0:
        request.size = options.size
    if options.from_ > 0:
        request.from_ = options.from_
    if options.fields:
        request.fields = list(options.fields)
    if options.highlight is not None:
        request.highlight = HighlightRequest(
            style=options.highlight.style,
            fields=list(options.highlight.fields),
        )
    if options.sort:
        request.sort_by(sort_keys(options))
    request.explain = options.explain


def apply_facets(request: EngineRequest, facets: Mapping[str, FacetSpec]) -> None:
    """Attach facet declarations to ``request``.

    Raises:
        ValidationError: If a facet type is unknown.
        InvalidDate: If a date range bucket bound is not a timestamp.
    """
    for name, spec in facets.items():
        facet = FacetRequest(field=spec.field, size=spec.size)
        if spec.type == "numeric_range":
            facet.numeric_ranges = [
                NumericRangeBucket(name=r.name, min=r.min, max=r.max) for r in spec.ranges
            ]
        elif spec.type == "date_range":
            facet.date_ranges = [
                DateRangeBucket(
                    name=r.name,
                    start=_bucket_date(r.start, "start") if r.start else None,
                    end=_bucket_date(r.end, "end") if r.end else None,
                )
                for r in spec.ranges
            ]
        elif spec.type != "terms":
            raise ValidationError(f"facets.{name}: unsupported facet type {spec.type!r}")
        request.add_facet(name, facet)


def _bucket_date(value: str, bound: str):
    try:
        return dt_parser.isoparse(value)
    except ValueError as exc:
        raise InvalidDate(f"invalid facet range {bound} {value!r}: {exc}", field=bound) from exc
