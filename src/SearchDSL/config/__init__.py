from __future__ import annotations

"""Public configuration API for SearchDSL."""

from SearchDSL.config.app import (
    DEFAULT_CONFIG_PATH,
    AppConfig,
    check_cross_domain,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
    parse_yaml,
)
from SearchDSL.config.compiler import CompilerConfig
from SearchDSL.config.embedding import EmbeddingConfig
from SearchDSL.config.index import IndexConfig
from SearchDSL.config.runtime import RuntimeConfig
from SearchDSL.config.server import ServerConfig

__all__ = [
    "AppConfig",
    "CompilerConfig",
    "DEFAULT_CONFIG_PATH",
    "EmbeddingConfig",
    "IndexConfig",
    "RuntimeConfig",
    "ServerConfig",
    "check_cross_domain",
    "load_config",
    "load_config_with_defaults",
    "merge_config_dicts",
    "parse_config_dict",
    "parse_yaml",
]
