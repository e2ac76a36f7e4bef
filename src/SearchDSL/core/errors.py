"""Error taxonomy for query decoding, compilation and execution.

Every error raised by the DSL decoder, the compiler, the embedding step or
the engine wrapper derives from `QueryError`, so callers at the HTTP or CLI
boundary can map the whole family with a single ``except`` clause.
"""

from __future__ import annotations


class QueryError(Exception):
    """Base class for all query pipeline errors.

    Attributes:
        position: Location of the failing clause inside the query tree, as
            ``(group, index, kind)`` triples ordered from the root down. Empty
            when the failing clause is the root.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.position: list[tuple[str, int, str]] = []

    def at(self, group: str, index: int, kind: str) -> QueryError:
        """Prepend one boolean-child location and return self."""
        self.position.insert(0, (group, index, kind))
        return self

    def where(self) -> str:
        """Render `position` as a dotted path, e.g. ``must[1].bool.should[0].term``."""
        return ".".join(f"{group}[{index}].{kind}" for group, index, kind in self.position)


class ValidationError(QueryError):
    """Malformed clause shape, missing attribute or out-of-range parameter."""


class InvalidOperator(ValidationError):
    pass


class InvalidParameter(ValidationError):
    pass


class EmptyRange(ValidationError):
    pass


class InvalidDate(ValidationError):
    """A date range bound is not an RFC-3339 timestamp.

    Attributes:
        field: Which bound failed, ``start`` or ``end``.
    """

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message)
        self.field = field


class EmptyIDList(ValidationError):
    pass


class AmbiguousVectorInput(ValidationError):
    pass


class InvalidK(ValidationError):
    pass


class MaxDepthExceeded(ValidationError):
    pass


class UnsupportedClause(QueryError):
    """No variant populated, or a clause kind the compiler does not know."""


class EmbeddingFailed(QueryError):
    """The embedding provider could not turn clause text into a vector.

    The provider error is chained as ``__cause__``.
    """


class VectorDimensionMismatch(QueryError):
    def __init__(self, *, field: str, model: str, expected: int, actual: int) -> None:
        super().__init__(
            f"vector for field {field!r} has {actual} dimensions, model {model!r} produces {expected}"
        )
        self.expected = expected
        self.actual = actual


class EngineError(QueryError):
    """The search engine failed while executing an already compiled request."""


def describe(error: QueryError) -> str:
    """Return the error message prefixed with its tree position, if known."""
    where = error.where()
    return f"{where}: {error.message}" if where else error.message
