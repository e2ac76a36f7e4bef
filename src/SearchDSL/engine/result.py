"""Engine search results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any


@dataclass(slots=True)
class DocumentMatch:
    id: str
    score: float
    fields: dict[str, Any] = field(default_factory=dict)
    fragments: dict[str, list[str]] = field(default_factory=dict)
    explanation: dict[str, Any] | None = None


@dataclass(slots=True)
class TermCount:
    term: str
    count: int


@dataclass(slots=True)
class RangeCount:
    name: str
    count: int
    min: Any = None
    max: Any = None


@dataclass(slots=True)
class FacetResult:
    field: str
    total: int = 0
    missing: int = 0
    other: int = 0
    terms: list[TermCount] = field(default_factory=list)
    ranges: list[RangeCount] = field(default_factory=list)


@dataclass(slots=True)
class SearchResult:
    total: int
    hits: list[DocumentMatch]
    max_score: float = 0.0
    took: timedelta = timedelta(0)
    facets: dict[str, FacetResult] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Render the result as JSON-serializable data."""
        payload: dict[str, Any] = {
            "total": self.total,
            "max_score": self.max_score,
            "took": self.took.total_seconds(),
            "hits": [],
        }
        for hit in self.hits:
            item: dict[str, Any] = {"id": hit.id, "score": hit.score}
            if hit.fields:
                item["fields"] = hit.fields
            if hit.fragments:
                item["fragments"] = hit.fragments
            if hit.explanation is not None:
                item["explanation"] = hit.explanation
            payload["hits"].append(item)
        if self.facets:
            payload["facets"] = {
                name: {
                    "field": facet.field,
                    "total": facet.total,
                    "missing": facet.missing,
                    "other": facet.other,
                    "terms": [{"term": t.term, "count": t.count} for t in facet.terms],
                    "ranges": [
                        {"name": r.name, "count": r.count, "min": r.min, "max": r.max}
                        for r in facet.ranges
                    ],
                }
                for name, facet in self.facets.items()
            }
        return payload
