"""Text analysis used by the reference engine at index and query time."""

from __future__ import annotations

import re
from typing import Any, Callable

_TOKEN_RE = re.compile(r"\w+", flags=re.UNICODE)


def standard(text: str) -> list[str]:
    """Lowercased word tokens."""
    return [token.lower() for token in _TOKEN_RE.findall(text)]


def keyword(text: str) -> list[str]:
    """The whole value as a single token."""
    return [text] if text else []


def whitespace(text: str) -> list[str]:
    return text.split()


ANALYZERS: dict[str, Callable[[str], list[str]]] = {
    "standard": standard,
    "keyword": keyword,
    "whitespace": whitespace,
}


def get_analyzer(name: str | None) -> Callable[[str], list[str]]:
    """Resolve an analyzer by name; ``None`` selects the standard analyzer.

    Raises:
        ValueError: If the analyzer name is unknown.
    """
    if name is None:
        return standard
    try:
        return ANALYZERS[name]
    except KeyError:
        raise ValueError(f"unknown analyzer: {name}") from None


def field_text(value: Any) -> str:
    """Flatten a stored field value into analyzable text."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(field_text(item) for item in value)
    return str(value)


def edit_distance(a: str, b: str, limit: int) -> int:
    """Levenshtein distance, returning ``limit + 1`` as soon as it is exceeded."""
    if abs(len(a) - len(b)) > limit:
        return limit + 1
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        if min(current) > limit:
            return limit + 1
        previous = current
    return previous[-1]
