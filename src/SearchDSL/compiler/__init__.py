"""Query compilation for SearchDSL."""

from __future__ import annotations

from typing import TYPE_CHECKING

from SearchDSL.compiler.compiler import DEFAULT_MAX_DEPTH, CompiledQuery, Embedder, QueryCompiler
from SearchDSL.compiler.options import apply_facets, apply_search_options, sort_keys

if TYPE_CHECKING:
    from SearchDSL.config import AppConfig


def create_compiler(config: AppConfig, embedder: Embedder | None) -> QueryCompiler:
    """Create a compiler bound to the shared embedding client."""
    return QueryCompiler(embedder, max_depth=config.compiler.max_depth)


__all__ = [
    "CompiledQuery",
    "DEFAULT_MAX_DEPTH",
    "Embedder",
    "QueryCompiler",
    "apply_facets",
    "apply_search_options",
    "create_compiler",
    "sort_keys",
]
