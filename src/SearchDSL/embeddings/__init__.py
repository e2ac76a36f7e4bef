"""Embedding provider client for SearchDSL."""

from __future__ import annotations

from typing import TYPE_CHECKING

from SearchDSL.embeddings.client import (
    MODEL_DIMENSIONS,
    EmbeddingClient,
    ProviderBadResponse,
    ProviderError,
    ProviderUnreachable,
)
from SearchDSL.utils.log import log

if TYPE_CHECKING:
    from SearchDSL.config import AppConfig


def create_embedding_client(config: AppConfig) -> EmbeddingClient:
    """Create the shared embedding client from configuration."""
    client = EmbeddingClient(
        base_url=config.embedding.base_url,
        model=config.embedding.model,
        timeout=config.embedding.timeout,
    )
    log.debug(
        "Embedding client created: endpoint=%s model=%s timeout=%s",
        client.endpoint,
        client.model,
        client.timeout,
    )
    return client


__all__ = [
    "EmbeddingClient",
    "MODEL_DIMENSIONS",
    "ProviderBadResponse",
    "ProviderError",
    "ProviderUnreachable",
    "create_embedding_client",
]
