"""Tests for the click command surface."""

from __future__ import annotations

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchDSL.cli import cli


def _fake_embed(self, text: str) -> list[float]:
    return [1.0 if "fox" in text else 0.0, 1.0] + [0.0] * 382


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        # the defaults file is resolved relative to the working directory
        cwd = os.getcwd()
        os.chdir(REPO_ROOT)
        self.addCleanup(os.chdir, cwd)

        self.workdir = Path(tempfile.mkdtemp())
        self.config_path = self.workdir / "override.yml"
        self.config_path.write_text(
            f"log:\n  level: ERROR\nindex:\n  path: {self.workdir / 'index.db'}\n",
            encoding="utf-8",
        )
        self.runner = CliRunner()

    def _write(self, name: str, text: str) -> Path:
        path = self.workdir / name
        path.write_text(text, encoding="utf-8")
        return path

    def _invoke(self, *args: str):
        return self.runner.invoke(cli, ["--config", str(self.config_path), *args])

    def test_compile_prints_engine_request(self) -> None:
        document = self._write(
            "query.yml",
            "query:\n  bool:\n    must:\n      - term: {field: status, value: draft}\n"
            "options:\n  size: 3\n  sort:\n    - {field: created_at, desc: true}\n",
        )
        result = self._invoke("compile", str(document))
        self.assertEqual(result.exit_code, 0, result.output)
        payload = json.loads(result.output)
        self.assertEqual(payload["query"], {"bool": {"must": [{"term": {"term": "draft", "field": "status"}}]}})
        self.assertEqual(payload["size"], 3)
        self.assertEqual(payload["sort"], ["-created_at"])

    def test_compile_reports_position(self) -> None:
        document = self._write("bad.yml", "query:\n  bool:\n    should:\n      - fuzzy: {field: a, value: b, fuzziness: 5}\n")
        result = self._invoke("compile", str(document))
        self.assertEqual(result.exit_code, 1)
        self.assertIn("should[0].fuzzy:", result.output)

    def test_index_then_search(self) -> None:
        with patch("SearchDSL.embeddings.client.EmbeddingClient.embed", new=_fake_embed):
            indexed = self._invoke("index", str(REPO_ROOT / "data" / "sample-documents.yml"))
            self.assertEqual(indexed.exit_code, 0, indexed.output)

            query = self._write(
                "vector.yml",
                "query:\n  vector: {field: vector, text: a fox, model: all-minilm, k: 1}\n"
                "options:\n  fields: [content]\n",
            )
            result = self._invoke("search", str(query))

        self.assertEqual(result.exit_code, 0, result.output)
        hits = json.loads(result.output)["hits"]
        self.assertEqual([hit["id"] for hit in hits], ["doc1"])
        self.assertIn("fox", hits[0]["fields"]["content"])

    def test_index_aborts_when_nothing_indexed(self) -> None:
        documents = self._write("docs.jsonl", '{"id": "a"}\n')
        result = self._invoke("index", str(documents))
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
