"""Error types raised by the cost scope engine."""

from __future__ import annotations


class CostScopeError(Exception):
    """Base class for engine errors."""


class SchemaError(CostScopeError, ValueError):
    """A fact row (or the fact frame) does not match the FactRow schema."""

    def __init__(self, message: str, row_index: int | None = None, field: str | None = None) -> None:
        self.row_index = row_index
        self.field = field
        if row_index is not None:
            message = f"row {row_index}: {message}"
        super().__init__(message)


class UnknownDimensionError(CostScopeError, ValueError):
    """A dimension name outside the fixed five was requested."""

    def __init__(self, dimension: object) -> None:
        self.dimension = dimension
        super().__init__(
            f"Unknown dimension: {dimension!r}; expected one of "
            "subscription, category, subcategory, meter, resource"
        )
