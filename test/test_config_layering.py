"""Tests for layered config parsing and validation."""

import os
import sys
import tempfile
import unittest
from copy import deepcopy
from pathlib import Path
from unittest.mock import patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchDSL.config import load_config_with_defaults, merge_config_dicts, parse_config_dict, parse_yaml


def _base_raw_config() -> dict:
    return {
        "log": {"level": "INFO", "to_file": False, "dir": "log"},
        "embedding": {"base_url": "http://localhost:11434", "model": "all-minilm", "timeout": None},
        "index": {
            "path": "data/index.db",
            "text_fields": ["id", "content"],
            "vector_field": "vector",
            "dimensions": 384,
            "similarity": "cosine",
        },
        "compiler": {"max_depth": 32},
        "server": {"host": "127.0.0.1", "port": 8080},
    }


class TestConfigLayering(unittest.TestCase):
    def test_parse_success_nested_access(self) -> None:
        cfg = parse_config_dict(_base_raw_config())
        self.assertEqual(cfg.runtime.level, "INFO")
        self.assertEqual(cfg.embedding.model, "all-minilm")
        self.assertIsNone(cfg.embedding.timeout)
        self.assertEqual(cfg.index.text_fields, ("id", "content"))
        self.assertEqual(cfg.index.mapping().dimensions, 384)
        self.assertEqual(cfg.compiler.max_depth, 32)
        self.assertEqual(cfg.server.port, 8080)

    def test_repo_default_file_parses(self) -> None:
        cfg = load_config_with_defaults(
            REPO_ROOT / "config" / "default.yml", default_path=REPO_ROOT / "config" / "default.yml"
        )
        self.assertEqual(cfg.index.similarity, "cosine")

    def test_override_file_is_deep_merged(self) -> None:
        override = Path(tempfile.mkdtemp()) / "override.yml"
        override.write_text("embedding:\n  model: nomic-embed-text\nindex:\n  dimensions: 768\n", encoding="utf-8")
        cfg = load_config_with_defaults(override, default_path=REPO_ROOT / "config" / "default.yml")
        self.assertEqual(cfg.embedding.model, "nomic-embed-text")
        self.assertEqual(cfg.index.dimensions, 768)
        self.assertEqual(cfg.index.vector_field, "vector")

    def test_compiler_section_is_optional(self) -> None:
        raw = _base_raw_config()
        del raw["compiler"]
        self.assertEqual(parse_config_dict(raw).compiler.max_depth, 32)

    def test_timeout_type_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["embedding"]["timeout"] = "30"
        with self.assertRaisesRegex(TypeError, "embedding\\.timeout"):
            parse_config_dict(raw)

    def test_dimensions_type_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["index"]["dimensions"] = True
        with self.assertRaisesRegex(TypeError, "index\\.dimensions"):
            parse_config_dict(raw)

    def test_unknown_similarity(self) -> None:
        raw = _base_raw_config()
        raw["index"]["similarity"] = "hamming"
        with self.assertRaisesRegex(ValueError, "index\\.similarity"):
            parse_config_dict(raw)

    def test_dimensions_must_match_known_model(self) -> None:
        raw = _base_raw_config()
        raw["index"]["dimensions"] = 768
        with self.assertRaisesRegex(ValueError, "index\\.dimensions"):
            parse_config_dict(raw)

    def test_unknown_model_skips_dimension_check(self) -> None:
        raw = deepcopy(_base_raw_config())
        raw["embedding"]["model"] = "my-model"
        raw["index"]["dimensions"] = 12
        self.assertEqual(parse_config_dict(raw).index.dimensions, 12)

    def test_missing_section(self) -> None:
        raw = _base_raw_config()
        del raw["server"]
        with self.assertRaisesRegex(ValueError, "server"):
            parse_config_dict(raw)

    def test_max_depth_range(self) -> None:
        raw = _base_raw_config()
        raw["compiler"]["max_depth"] = 0
        with self.assertRaisesRegex(ValueError, "compiler\\.max_depth"):
            parse_config_dict(raw)

    def test_base_url_from_environment(self) -> None:
        with patch.dict(os.environ, {"OLLAMA_HOST": "gpu-box:11434"}):
            self.assertEqual(parse_config_dict(_base_raw_config()).embedding.base_url, "http://gpu-box:11434")

        raw = _base_raw_config()
        raw["embedding"]["base_url_env"] = "EMBEDDINGS_URL"
        with patch.dict(os.environ, {"EMBEDDINGS_URL": "https://embed.example.com", "OLLAMA_HOST": "ignored:1"}):
            self.assertEqual(parse_config_dict(raw).embedding.base_url, "https://embed.example.com")

        with patch.dict(os.environ, {"OLLAMA_HOST": ""}):
            self.assertEqual(parse_config_dict(_base_raw_config()).embedding.base_url, "http://localhost:11434")

    def test_access_log_defaults_on(self) -> None:
        self.assertTrue(parse_config_dict(_base_raw_config()).runtime.access_log)
        raw = _base_raw_config()
        raw["log"]["access_log"] = False
        self.assertFalse(parse_config_dict(raw).runtime.access_log)
        raw["log"]["access_log"] = "no"
        with self.assertRaisesRegex(TypeError, "log\\.access_log"):
            parse_config_dict(raw)

    def test_log_level_is_checked(self) -> None:
        raw = _base_raw_config()
        raw["log"]["level"] = "verbose"
        with self.assertRaisesRegex(ValueError, "log\\.level"):
            parse_config_dict(raw)

    def test_merge_and_parse_yaml(self) -> None:
        merged = merge_config_dicts({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}, "d": 4})
        self.assertEqual(merged, {"a": {"b": 1, "c": 3}, "d": 4})
        self.assertEqual(parse_yaml(""), {})
        with self.assertRaises(ValueError):
            parse_yaml("- a\n- b\n")


if __name__ == "__main__":
    unittest.main()
