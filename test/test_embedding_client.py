"""Tests for the embedding provider HTTP client."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchDSL.embeddings.client import (
    EmbeddingClient,
    ProviderBadResponse,
    ProviderUnreachable,
)


def _response(*, status: int = 200, payload=None, json_error: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = "body"
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


class TestEmbeddingClient(unittest.TestCase):
    def _client(self, response=None, error=None) -> tuple[EmbeddingClient, MagicMock]:
        session = MagicMock()
        if error is not None:
            session.post.side_effect = error
        else:
            session.post.return_value = response
        return EmbeddingClient("http://embed:11434/", "all-minilm", timeout=5.0, session=session), session

    def test_embed_posts_model_and_prompt(self) -> None:
        client, session = self._client(_response(payload={"embedding": [0.5, 1, -2]}))

        vector = client.embed("life")

        self.assertEqual(vector, [0.5, 1.0, -2.0])
        session.post.assert_called_once_with(
            "http://embed:11434/api/embeddings",
            json={"model": "all-minilm", "prompt": "life"},
            timeout=5.0,
        )

    def test_connection_error_is_unreachable(self) -> None:
        client, _ = self._client(error=requests.ConnectionError("refused"))
        with self.assertRaises(ProviderUnreachable):
            client.embed("life")

    def test_timeout_is_unreachable(self) -> None:
        client, _ = self._client(error=requests.Timeout("slow"))
        with self.assertRaises(ProviderUnreachable):
            client.embed("life")

    def test_bad_responses(self) -> None:
        cases = {
            "http_error": _response(status=500, payload={}),
            "invalid_json": _response(json_error=True),
            "missing_embedding": _response(payload={"error": "model not found"}),
            "empty_embedding": _response(payload={"embedding": []}),
            "non_numeric": _response(payload={"embedding": [0.1, "x"]}),
            "not_object": _response(payload=[0.1, 0.2]),
        }
        for name, response in cases.items():
            with self.subTest(case=name):
                client, _ = self._client(response)
                with self.assertRaises(ProviderBadResponse):
                    client.embed("life")

    def test_dimensions_table(self) -> None:
        client, _ = self._client()
        self.assertEqual(client.get_dimensions(), 384)
        self.assertEqual(client.for_model("nomic-embed-text").get_dimensions(), 768)
        self.assertEqual(client.for_model("mxbai-embed-large").get_dimensions(), 1024)
        self.assertIsNone(client.for_model("unknown-model").get_dimensions())

    def test_for_model_shares_address(self) -> None:
        client, session = self._client(_response(payload={"embedding": [1.0]}))
        other = client.for_model("nomic-embed-text")
        self.assertIs(client.for_model("all-minilm"), client)
        self.assertEqual(other.endpoint, client.endpoint)
        other.embed("x")
        self.assertEqual(session.post.call_args.kwargs["json"]["model"], "nomic-embed-text")

    def test_empty_base_url(self) -> None:
        with self.assertRaises(ValueError):
            EmbeddingClient("", "all-minilm")


if __name__ == "__main__":
    unittest.main()
