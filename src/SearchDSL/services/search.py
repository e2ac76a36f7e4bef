"""Search service: decode, compile, apply options, execute."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from SearchDSL.compiler.compiler import CompiledQuery, QueryCompiler
from SearchDSL.compiler.options import apply_facets, apply_search_options
from SearchDSL.core.errors import EngineError, QueryError
from SearchDSL.core.query import SearchRequest
from SearchDSL.dsl.parser import parse_search_document
from SearchDSL.engine.index import Index
from SearchDSL.engine.query import MatchAllQuery, MatchNoneQuery
from SearchDSL.engine.request import EngineRequest
from SearchDSL.engine.result import SearchResult
from SearchDSL.utils.log import log

LIST_DOCUMENTS_LIMIT = 1000


@dataclass(slots=True)
class SearchService:
    """Runs declarative search documents against one index.

    Stateless apart from its collaborators, so a single instance serves all
    request threads.
    """

    index: Index
    compiler: QueryCompiler

    def search_document(self, text: str) -> SearchResult:
        """Decode a YAML/JSON search document and execute it.

        Raises:
            QueryError: Decoding or compilation failed; the engine was not called.
            EngineError: The engine failed while executing the request.
        """
        return self.search(parse_search_document(text))

    def search(self, request: SearchRequest) -> SearchResult:
        engine_request = self.build_request(request)
        result = self._execute(engine_request)
        log.info(
            "Search completed: total=%d hits=%d knn=%d took=%.3fs",
            result.total,
            len(result.hits),
            len(engine_request.knn),
            result.took.total_seconds(),
        )
        return result

    def build_request(self, request: SearchRequest) -> EngineRequest:
        """Compile ``request`` into an engine request without executing it."""
        return build_engine_request(self.compiler, request)

    def list_documents(self, limit: int = LIST_DOCUMENTS_LIMIT) -> SearchResult:
        """Return up to ``limit`` documents with all stored fields."""
        request = EngineRequest(query=MatchAllQuery(), size=limit, fields=["*"])
        return self._execute(request)

    def _execute(self, request: EngineRequest) -> SearchResult:
        try:
            return self.index.search(request)
        except QueryError:
            raise
        except Exception as error:  # noqa: BLE001 - engine failures surface as EngineError
            log.error("Search execution failed: %s", error)
            raise EngineError(f"search failed: {error}") from error


def build_engine_request(compiler: QueryCompiler, request: SearchRequest) -> EngineRequest:
    """Compile the query tree, attach lifted k-NN requests, options and facets.

    A k-NN-only query without an explicit size returns up to the largest
    ``k`` hits instead of the engine default.
    """
    compiled = compiler.compile(request.query)
    engine_request = EngineRequest(query=compiled.query)
    for knn in compiled.knn:
        engine_request.add_knn(knn.field, knn.vector, knn.k, knn.boost)
    if _knn_only(compiled) and not (request.options and request.options.size > 0):
        engine_request.size = max(knn.k for knn in compiled.knn)
    apply_search_options(engine_request, request.options)
    apply_facets(engine_request, request.facets)
    log.debug("Engine request: %s", engine_request.to_dict())
    return engine_request


def _knn_only(compiled: CompiledQuery) -> bool:
    return bool(compiled.knn) and isinstance(compiled.query, MatchNoneQuery)


def documents_payload(result: SearchResult) -> dict[str, Any]:
    """Render a document listing as ``{total, documents: [{id, fields}]}``."""
    return {
        "total": result.total,
        "documents": [{"id": hit.id, "fields": hit.fields} for hit in result.hits],
    }
