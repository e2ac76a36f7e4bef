from __future__ import annotations

"""Index domain configuration: location and field mapping."""

from dataclasses import dataclass
from typing import Any, Mapping

from SearchDSL.config.common import (
    expect_int,
    expect_str,
    expect_str_list,
    get_required_value,
    get_section,
)
from SearchDSL.engine.index import SIMILARITIES, IndexMapping


@dataclass(frozen=True, slots=True)
class IndexConfig:
    """Index location and mapping."""

    path: str
    text_fields: tuple[str, ...]
    vector_field: str
    dimensions: int
    similarity: str

    def mapping(self) -> IndexMapping:
        return IndexMapping(
            text_fields=self.text_fields,
            vector_field=self.vector_field,
            dimensions=self.dimensions,
            similarity=self.similarity,
        )


def load_index(raw: Mapping[str, Any]) -> IndexConfig:
    section = get_section(raw, "index", required=True)
    return IndexConfig(
        path=expect_str(get_required_value(section, "path", "index.path"), "index.path"),
        text_fields=tuple(
            expect_str_list(get_required_value(section, "text_fields", "index.text_fields"), "index.text_fields")
        ),
        vector_field=expect_str(
            get_required_value(section, "vector_field", "index.vector_field"), "index.vector_field"
        ),
        dimensions=expect_int(get_required_value(section, "dimensions", "index.dimensions"), "index.dimensions"),
        similarity=expect_str(get_required_value(section, "similarity", "index.similarity"), "index.similarity"),
    )


def check_index(config: IndexConfig) -> None:
    if not config.path.strip():
        raise ValueError("index.path must not be empty")
    if not config.text_fields:
        raise ValueError("index.text_fields must not be empty")
    if not config.vector_field.strip():
        raise ValueError("index.vector_field must not be empty")
    if config.vector_field in config.text_fields:
        raise ValueError("index.vector_field must not be one of index.text_fields")
    if config.dimensions <= 0:
        raise ValueError("index.dimensions must be > 0")
    if config.similarity not in SIMILARITIES:
        raise ValueError(f"index.similarity must be one of {list(SIMILARITIES)}")
