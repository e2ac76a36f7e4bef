from __future__ import annotations

"""Compiler configuration."""

from dataclasses import dataclass
from typing import Any, Mapping

from SearchDSL.config.common import expect_int, get_section

_DEFAULT_MAX_DEPTH = 32


@dataclass(frozen=True, slots=True)
class CompilerConfig:
    max_depth: int


def load_compiler(raw: Mapping[str, Any]) -> CompilerConfig:
    section = get_section(raw, "compiler", required=False)
    return CompilerConfig(
        max_depth=expect_int(section.get("max_depth", _DEFAULT_MAX_DEPTH), "compiler.max_depth"),
    )


def check_compiler(config: CompilerConfig) -> None:
    if config.max_depth < 1:
        raise ValueError("compiler.max_depth must be >= 1")
