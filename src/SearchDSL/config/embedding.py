from __future__ import annotations

"""Embedding provider configuration."""

import os
from dataclasses import dataclass
from typing import Any, Mapping

from SearchDSL.config.common import (
    expect_float,
    expect_optional,
    expect_str,
    get_required_value,
    get_section,
)

DEFAULT_BASE_URL_ENV = "OLLAMA_HOST"


@dataclass(frozen=True, slots=True)
class EmbeddingConfig:
    """Embedding provider settings.

    Attributes:
        base_url: Provider address, e.g. ``http://localhost:11434``. Replaced
            by the value of ``base_url_env`` when that variable is set.
        model: Default model for indexing and for the shared client.
        timeout: Request deadline in seconds; ``None`` waits forever.
        base_url_env: Environment variable consulted for the provider address.
    """

    base_url: str
    model: str
    timeout: float | None
    base_url_env: str = DEFAULT_BASE_URL_ENV


def load_embedding(raw: Mapping[str, Any]) -> EmbeddingConfig:
    section = get_section(raw, "embedding", required=True)
    base_url_env = expect_str(section.get("base_url_env", DEFAULT_BASE_URL_ENV), "embedding.base_url_env")
    base_url = expect_str(get_required_value(section, "base_url", "embedding.base_url"), "embedding.base_url")
    return EmbeddingConfig(
        base_url=_base_url_from_env(base_url_env) or base_url,
        model=expect_str(get_required_value(section, "model", "embedding.model"), "embedding.model"),
        timeout=expect_optional(section.get("timeout"), "embedding.timeout", expect_float),
        base_url_env=base_url_env,
    )


def check_embedding(config: EmbeddingConfig) -> None:
    if not config.base_url.strip():
        raise ValueError("embedding.base_url must not be empty")
    if not config.base_url.startswith(("http://", "https://")):
        raise ValueError("embedding.base_url must start with http:// or https://")
    if not config.model.strip():
        raise ValueError("embedding.model must not be empty")
    if config.timeout is not None and config.timeout <= 0:
        raise ValueError("embedding.timeout must be > 0")


def _base_url_from_env(name: str) -> str:
    # OLLAMA_HOST is commonly given as bare host:port.
    value = os.getenv(name, "").strip() if name else ""
    if value and "://" not in value:
        value = f"http://{value}"
    return value
