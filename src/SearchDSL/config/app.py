from __future__ import annotations

"""Application config orchestration and YAML loading entrypoints."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from SearchDSL.config.compiler import CompilerConfig, check_compiler, load_compiler
from SearchDSL.config.embedding import EmbeddingConfig, check_embedding, load_embedding
from SearchDSL.config.index import IndexConfig, check_index, load_index
from SearchDSL.config.runtime import RuntimeConfig, check_runtime, load_runtime
from SearchDSL.config.server import ServerConfig, check_server, load_server
from SearchDSL.embeddings.client import MODEL_DIMENSIONS

DEFAULT_CONFIG_PATH = Path("config/default.yml")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application root configuration."""

    runtime: RuntimeConfig
    embedding: EmbeddingConfig
    index: IndexConfig
    compiler: CompilerConfig
    server: ServerConfig


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Parse a merged config mapping into AppConfig.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If a value is missing or out of range.
    """
    runtime = load_runtime(raw)
    embedding = load_embedding(raw)
    index = load_index(raw)
    compiler = load_compiler(raw)
    server = load_server(raw)

    check_runtime(runtime)
    check_embedding(embedding)
    check_index(index)
    check_compiler(compiler)
    check_server(server)

    config = AppConfig(
        runtime=runtime,
        embedding=embedding,
        index=index,
        compiler=compiler,
        server=server,
    )
    check_cross_domain(config)
    return config


def load_config(path: Path) -> AppConfig:
    """Load a YAML config file without default merge."""
    return load_config_with_defaults(path, default_path=path)


def load_config_with_defaults(config_path: Path, default_path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load config by deep-merging ``config_path`` over the defaults file."""
    base = parse_yaml(default_path.read_text(encoding="utf-8"))
    if config_path == default_path:
        return parse_config_dict(base)
    override = parse_yaml(config_path.read_text(encoding="utf-8"))
    return parse_config_dict(merge_config_dicts(base, override))


def check_cross_domain(config: AppConfig) -> None:
    """Validate constraints spanning several sections."""
    known = MODEL_DIMENSIONS.get(config.embedding.model)
    if known is not None and known != config.index.dimensions:
        raise ValueError(
            f"index.dimensions={config.index.dimensions} does not match "
            f"embedding.model={config.embedding.model} ({known} dimensions)"
        )


def parse_yaml(text: str) -> dict[str, Any]:
    """Parse raw YAML text into a mapping."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Config root must be a mapping/object")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two config mappings; ``override`` wins on scalar conflicts."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
