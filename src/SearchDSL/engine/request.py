"""Engine search request.

An `EngineRequest` wraps the compiled lexical query together with the
execution knobs the engine understands: paging, stored fields, sorting,
highlighting, facets and k-NN augmentations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from SearchDSL.engine.query import EngineQuery, query_to_dict

DEFAULT_SIZE = 10
DEFAULT_SORT = ("-_score",)


@dataclass(frozen=True, slots=True)
class KNNRequest:
    """k-nearest-neighbor side query added to a request."""

    field: str
    vector: tuple[float, ...]
    k: int
    boost: float = 1.0


@dataclass(slots=True)
class HighlightRequest:
    style: str | None = None
    fields: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class NumericRangeBucket:
    name: str
    min: float | None = None
    max: float | None = None


@dataclass(frozen=True, slots=True)
class DateRangeBucket:
    name: str
    start: datetime | None = None
    end: datetime | None = None


@dataclass(slots=True)
class FacetRequest:
    field: str
    size: int = 10
    numeric_ranges: list[NumericRangeBucket] = field(default_factory=list)
    date_ranges: list[DateRangeBucket] = field(default_factory=list)


@dataclass(slots=True)
class EngineRequest:
    query: EngineQuery
    size: int = DEFAULT_SIZE
    from_: int = 0
    explain: bool = False
    fields: list[str] = field(default_factory=list)
    sort: list[str] = field(default_factory=lambda: list(DEFAULT_SORT))
    highlight: HighlightRequest | None = None
    facets: dict[str, FacetRequest] = field(default_factory=dict)
    knn: list[KNNRequest] = field(default_factory=list)

    def add_knn(self, field_name: str, vector: Sequence[float], k: int, boost: float = 1.0) -> None:
        self.knn.append(KNNRequest(field=field_name, vector=tuple(vector), k=k, boost=boost))

    def sort_by(self, keys: Sequence[str]) -> None:
        """Replace the sort order with ``keys``; a ``-`` prefix means descending."""
        self.sort = list(keys)

    def add_facet(self, name: str, facet: FacetRequest) -> None:
        self.facets[name] = facet

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "query": query_to_dict(self.query),
            "size": self.size,
            "from": self.from_,
            "explain": self.explain,
            "fields": list(self.fields),
            "sort": list(self.sort),
        }
        if self.highlight is not None:
            payload["highlight"] = {"style": self.highlight.style, "fields": list(self.highlight.fields)}
        if self.knn:
            payload["knn"] = [
                {"field": item.field, "k": item.k, "boost": item.boost, "dims": len(item.vector)}
                for item in self.knn
            ]
        if self.facets:
            payload["facets"] = {
                name: {
                    "field": facet.field,
                    "size": facet.size,
                    "numeric_ranges": [
                        {"name": r.name, "min": r.min, "max": r.max} for r in facet.numeric_ranges
                    ],
                    "date_ranges": [
                        {
                            "name": r.name,
                            "start": r.start.isoformat() if r.start else None,
                            "end": r.end.isoformat() if r.end else None,
                        }
                        for r in facet.date_ranges
                    ],
                }
                for name, facet in self.facets.items()
            }
        return payload
