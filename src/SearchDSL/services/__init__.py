"""Service layer for SearchDSL.

Wires the index, the embedding client and the compiler together from
configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from SearchDSL.services.indexing import IndexingReport, IndexingService, load_documents
from SearchDSL.services.search import SearchService, build_engine_request, documents_payload

if TYPE_CHECKING:
    from SearchDSL.compiler.compiler import Embedder
    from SearchDSL.config import AppConfig
    from SearchDSL.engine.index import Index


def open_index(config: AppConfig) -> Index:
    """Open the configured index, creating it on first use."""
    from SearchDSL.engine.index import open_or_create

    return open_or_create(config.index.path, config.index.mapping())


def create_search_service(config: AppConfig, index: Index, embedder: Embedder | None) -> SearchService:
    """Create a search service over ``index``.

    Args:
        config: Application configuration (compiler settings).
        index: Opened index shared by all requests.
        embedder: Shared embedding client for text vector clauses.

    Returns:
        Configured SearchService instance.
    """
    from SearchDSL.compiler import create_compiler

    return SearchService(index=index, compiler=create_compiler(config, embedder))


def create_indexing_service(index: Index, embedder: Embedder) -> IndexingService:
    return IndexingService(index=index, embedder=embedder)


__all__ = [
    "IndexingReport",
    "IndexingService",
    "SearchService",
    "build_engine_request",
    "create_indexing_service",
    "create_search_service",
    "documents_payload",
    "load_documents",
    "open_index",
]
