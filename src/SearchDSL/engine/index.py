"""Index contract consumed by the search service."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

from SearchDSL.engine.request import EngineRequest
from SearchDSL.engine.result import SearchResult

SIMILARITIES = ("cosine", "dot_product", "l2_norm")


@dataclass(frozen=True, slots=True)
class IndexMapping:
    """Field layout of an index.

    Attributes:
        text_fields: Analyzed fields searched when a query names no field.
        vector_field: Field holding each document's embedding.
        dimensions: Width of stored vectors.
        similarity: Vector similarity metric, one of `SIMILARITIES`.
    """

    text_fields: Sequence[str] = field(default_factory=lambda: ("id", "content"))
    vector_field: str = "vector"
    dimensions: int = 384
    similarity: str = "cosine"

    def to_dict(self) -> dict[str, Any]:
        return {
            "text_fields": list(self.text_fields),
            "vector_field": self.vector_field,
            "dimensions": self.dimensions,
            "similarity": self.similarity,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> IndexMapping:
        return cls(
            text_fields=tuple(raw.get("text_fields", ("id", "content"))),
            vector_field=raw.get("vector_field", "vector"),
            dimensions=int(raw.get("dimensions", 384)),
            similarity=raw.get("similarity", "cosine"),
        )


class Index(Protocol):
    """Search engine handle, opened once and shared by all requests."""

    mapping: IndexMapping

    def index(self, doc_id: str, document: Mapping[str, Any]) -> None:
        """Insert or replace one document."""
        raise NotImplementedError

    def delete(self, doc_id: str) -> bool:
        """Remove one document; return whether it existed."""
        raise NotImplementedError

    def document_count(self) -> int:
        raise NotImplementedError

    def search(self, request: EngineRequest) -> SearchResult:
        """Execute a compiled request."""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


def open_or_create(path: Path | str, mapping: IndexMapping) -> Index:
    """Open the index at ``path``, creating it with ``mapping`` if absent.

    An existing index keeps the mapping it was created with.
    """
    from SearchDSL.engine.memory import MemoryIndex

    return MemoryIndex.open_or_create(path, mapping)
