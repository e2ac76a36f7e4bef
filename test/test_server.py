"""Functional tests for the HTTP API."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

import yaml
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchDSL.compiler.compiler import QueryCompiler
from SearchDSL.engine.index import IndexMapping
from SearchDSL.engine.memory import MemoryIndex
from SearchDSL.engine.result import SearchResult
from SearchDSL.server import create_app
from SearchDSL.services import SearchService


class _BrokenIndex:
    mapping = IndexMapping(dimensions=2)

    def search(self, request) -> SearchResult:
        raise RuntimeError("disk on fire")

    def document_count(self) -> int:
        return 0


class TestSearchAPI(unittest.TestCase):
    def setUp(self) -> None:
        self.index = MemoryIndex.open_or_create(":memory:", IndexMapping(dimensions=2))
        self.index.index("doc1", {"id": "doc1", "content": "life is short", "vector": [1.0, 0.0]})
        self.index.index("doc2", {"id": "doc2", "content": "art is long", "vector": [0.0, 1.0]})
        self.client = TestClient(create_app(SearchService(index=self.index, compiler=QueryCompiler())))

    def tearDown(self) -> None:
        self.index.close()

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok", "documents": 2})

    def test_mapping_is_yaml(self) -> None:
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/plain"))
        mapping = yaml.safe_load(response.text)
        self.assertEqual(mapping["dimensions"], 2)
        self.assertEqual(mapping["vector_field"], "vector")

    def test_search_yaml_body(self) -> None:
        response = self.client.post(
            "/search",
            content="query:\n  match: {field: content, value: life}\noptions:\n  fields: [content]\n",
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total"], 1)
        self.assertEqual(payload["hits"][0]["id"], "doc1")
        self.assertEqual(payload["hits"][0]["fields"], {"content": "life is short"})

    def test_search_json_body_with_vector(self) -> None:
        response = self.client.post(
            "/search",
            content='{"query": {"vector": {"field": "vector", "vector": [0.0, 1.0], "model": "none", "k": 1}}}',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([hit["id"] for hit in response.json()["hits"]], ["doc2"])

    def test_validation_error_is_400_with_position(self) -> None:
        response = self.client.post(
            "/search",
            content="query:\n  bool:\n    should:\n      - term: {field: a, value: b}\n"
            "      - doc_id: {ids: []}\n",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "should[1].doc_id: doc_id requires at least one id")

    def test_unsupported_clause_is_400(self) -> None:
        response = self.client.post("/search", content="query:\n  geo_distance: {field: loc}\n")
        self.assertEqual(response.status_code, 400)
        self.assertIn("geo_distance", response.json()["detail"])

    def test_empty_body_is_400(self) -> None:
        response = self.client.post("/search", content="")
        self.assertEqual(response.status_code, 400)

    def test_invalid_utf8_body_is_400(self) -> None:
        body = b"query:\n  term: {field: content, value: \xff\xfelife}\n"
        response = self.client.post("/search", content=body)
        self.assertEqual(response.status_code, 400)
        self.assertIn("not valid UTF-8", response.json()["detail"])

    def test_documents_listing(self) -> None:
        response = self.client.get("/documents", params={"limit": 1})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total"], 2)
        self.assertEqual(payload["documents"], [{"id": "doc1", "fields": {"id": "doc1", "content": "life is short"}}])

    def test_documents_limit_range(self) -> None:
        self.assertEqual(self.client.get("/documents", params={"limit": 0}).status_code, 400)
        self.assertEqual(self.client.get("/documents", params={"limit": 1001}).status_code, 400)


class TestEngineFailures(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(create_app(SearchService(index=_BrokenIndex(), compiler=QueryCompiler())))

    def test_search_engine_error_is_500(self) -> None:
        response = self.client.post("/search", content="query:\n  term: {field: a, value: b}\n")
        self.assertEqual(response.status_code, 500)
        self.assertIn("disk on fire", response.json()["detail"])

    def test_documents_engine_error_is_500(self) -> None:
        response = self.client.get("/documents")
        self.assertEqual(response.status_code, 500)


if __name__ == "__main__":
    unittest.main()
