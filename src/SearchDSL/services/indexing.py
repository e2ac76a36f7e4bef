"""Document ingestion: embed each document's content and index it."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from SearchDSL.compiler.compiler import Embedder
from SearchDSL.core.errors import EmbeddingFailed, VectorDimensionMismatch
from SearchDSL.embeddings.client import ProviderError
from SearchDSL.engine.index import Index
from SearchDSL.utils.log import log

CONTENT_FIELD = "content"


@dataclass(frozen=True, slots=True)
class IndexingReport:
    indexed: int
    failed: int


@dataclass(slots=True)
class IndexingService:
    """Adds documents to an index, generating their vectors on the way in."""

    index: Index
    embedder: Embedder
    content_field: str = CONTENT_FIELD

    def index_document(self, document: Mapping[str, Any]) -> str:
        """Embed and index one document.

        Documents that already carry a vector keep it.

        Args:
            document: Mapping with a string ``id`` and a text content field.

        Returns:
            The document id.

        Raises:
            ValueError: If ``id`` is missing or the document has no content.
            EmbeddingFailed: If the provider could not embed the content.
            VectorDimensionMismatch: If the vector width differs from the mapping.
        """
        doc_id = document.get("id")
        if not isinstance(doc_id, str) or not doc_id:
            raise ValueError("document id must be a non-empty string")

        mapping = self.index.mapping
        body = dict(document)
        vector = body.get(mapping.vector_field)
        if vector is None:
            content = body.get(self.content_field)
            if not isinstance(content, str) or not content.strip():
                raise ValueError(f"document {doc_id!r} has no {self.content_field}")
            try:
                vector = self.embedder.embed(content)
            except ProviderError as exc:
                raise EmbeddingFailed(f"failed to generate embedding: {exc}") from exc

        if len(vector) != mapping.dimensions:
            raise VectorDimensionMismatch(
                field=mapping.vector_field,
                model=self.embedder.model,
                expected=mapping.dimensions,
                actual=len(vector),
            )
        body[mapping.vector_field] = [float(v) for v in vector]
        self.index.index(doc_id, body)
        log.debug("Indexed document: %s", doc_id)
        return doc_id

    def index_batch(self, documents: Iterable[Mapping[str, Any]]) -> IndexingReport:
        """Index documents one by one; a failing document is logged and skipped."""
        indexed = 0
        failed = 0
        for document in documents:
            try:
                self.index_document(document)
            except Exception as error:  # noqa: BLE001 - one bad document must not stop the batch
                failed += 1
                log.warning("Error indexing document %s: %s", document.get("id", "?"), error)
                continue
            indexed += 1
        log.info("Indexing finished: indexed=%d failed=%d", indexed, failed)
        return IndexingReport(indexed=indexed, failed=failed)


def load_documents(path: Path) -> list[dict[str, Any]]:
    """Read documents from a JSON, JSON Lines or YAML file.

    JSON and YAML files hold either a list of documents or a mapping with a
    ``documents`` list.

    Raises:
        ValueError: If the file does not contain a list of mappings.
    """
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".jsonl":
        data: Any = [json.loads(line) for line in text.splitlines() if line.strip()]
    elif suffix == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text) or []

    if isinstance(data, Mapping):
        data = data.get("documents", [])
    if not isinstance(data, list) or not all(isinstance(item, Mapping) for item in data):
        raise ValueError(f"{path} must contain a list of documents")
    return [dict(item) for item in data]
