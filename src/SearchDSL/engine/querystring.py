"""Query-string expression parser.

Supported syntax, one clause per whitespace-separated token:

- ``word``                 match on the default field(s)
- ``field:word``           match on ``field``
- ``"a phrase"``           phrase match, also ``field:"a phrase"``
- ``+clause`` / ``-clause``  required / excluded (otherwise optional)
- ``wo*d`` / ``w?rd``      wildcard
- ``/regex/``              regular expression
- ``word~`` / ``word~2``   fuzzy term (default edit distance 1)
- ``field:>10`` ``field:<=5``  numeric or date comparison
- ``clause^2``             boost

When no clause is marked ``+``, at least one optional clause must match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dateutil import parser as dt_parser

from SearchDSL.engine.query import (
    BooleanQuery,
    DateRangeQuery,
    EngineQuery,
    FuzzyQuery,
    MatchPhraseQuery,
    MatchQuery,
    NumericRangeQuery,
    RegexpQuery,
    WildcardQuery,
)

_BOOST_RE = re.compile(r"\^(\d+(?:\.\d+)?)$")
_FUZZY_RE = re.compile(r"~(\d*)$")
_FIELD_RE = re.compile(r"^([A-Za-z_][\w.]*):(.+)$", flags=re.DOTALL)
_COMPARE_RE = re.compile(r"^(>=|<=|>|<)(.+)$")


class QueryStringSyntaxError(ValueError):
    pass


@dataclass(slots=True)
class _Token:
    occur: str
    text: str


def parse_query_string(text: str, *, default_field: str | None = None) -> BooleanQuery:
    """Parse a query-string expression into a boolean query.

    Args:
        text: Expression to parse.
        default_field: Field for clauses without an explicit ``field:`` prefix;
            ``None`` leaves them on the mapping's default text fields.

    Returns:
        Boolean query with one child per clause.

    Raises:
        QueryStringSyntaxError: On unbalanced quotes or malformed clauses.
    """
    query = BooleanQuery()
    for token in _tokenize(text):
        clause = _parse_clause(token.text, default_field)
        if token.occur == "+":
            query.add_must(clause)
        elif token.occur == "-":
            query.add_must_not(clause)
        else:
            query.add_should(clause)
    if not query.must and query.should:
        query.set_min_should(1)
    return query


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i, n = 0, len(text)
    while i < n:
        if text[i].isspace():
            i += 1
            continue
        occur = ""
        if text[i] in "+-":
            occur = text[i]
            i += 1
        start = i
        in_quote = False
        in_regex = False
        while i < n:
            char = text[i]
            if char == "\\" and i + 1 < n:
                i += 2
                continue
            if char == '"' and not in_regex:
                in_quote = not in_quote
            elif char == "/" and not in_quote and (i == start or text[i - 1] == ":" or in_regex):
                in_regex = not in_regex
            elif char.isspace() and not in_quote and not in_regex:
                break
            i += 1
        if in_quote:
            raise QueryStringSyntaxError(f"unterminated quote in query string: {text!r}")
        if in_regex:
            raise QueryStringSyntaxError(f"unterminated regexp in query string: {text!r}")
        chunk = text[start:i]
        if not chunk:
            raise QueryStringSyntaxError(f"dangling {occur!r} in query string: {text!r}")
        tokens.append(_Token(occur=occur, text=chunk))
    return tokens


def _parse_clause(text: str, default_field: str | None) -> EngineQuery:
    boost = None
    boost_match = _BOOST_RE.search(text)
    if boost_match:
        boost = float(boost_match.group(1))
        text = text[: boost_match.start()]

    field = default_field
    field_match = _FIELD_RE.match(text)
    if field_match and not text.startswith('"'):
        field, text = field_match.group(1), field_match.group(2)

    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return MatchPhraseQuery(match_phrase=_unescape(text[1:-1]), field=field, boost=boost)
    if len(text) >= 2 and text.startswith("/") and text.endswith("/"):
        return RegexpQuery(regexp=text[1:-1], field=field, boost=boost)

    compare = _COMPARE_RE.match(text)
    if compare and field is not None:
        return _comparison(field, compare.group(1), compare.group(2), boost)

    fuzzy = _FUZZY_RE.search(text)
    if fuzzy:
        distance = int(fuzzy.group(1)) if fuzzy.group(1) else 1
        return FuzzyQuery(term=_unescape(text[: fuzzy.start()]), field=field, boost=boost, fuzziness=distance)
    if _has_unescaped_wildcard(text):
        return WildcardQuery(wildcard=text, field=field, boost=boost)
    return MatchQuery(match=_unescape(text), field=field, boost=boost)


def _comparison(field: str, op: str, raw: str, boost: float | None) -> EngineQuery:
    inclusive = op.endswith("=")
    lower = op.startswith(">")
    try:
        number = float(raw)
    except ValueError:
        number = None
    if number is not None:
        if lower:
            return NumericRangeQuery(field=field, min=number, inclusive_min=inclusive, boost=boost)
        return NumericRangeQuery(field=field, max=number, inclusive_max=inclusive, boost=boost)

    try:
        when = dt_parser.isoparse(raw.strip('"'))
    except ValueError as exc:
        raise QueryStringSyntaxError(f"{field}{op}{raw} is neither a number nor a date") from exc
    if lower:
        return DateRangeQuery(field=field, start=when, inclusive_start=inclusive, boost=boost)
    return DateRangeQuery(field=field, end=when, inclusive_end=inclusive, boost=boost)


def _has_unescaped_wildcard(text: str) -> bool:
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char in "*?":
            return True
    return False


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text)
