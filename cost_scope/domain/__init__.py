"""Domain layer package."""

from .errors import CostScopeError, SchemaError, UnknownDimensionError
from .keys import (
    category_key,
    flat_resource_key,
    key_for_row,
    meter_key,
    resource_key,
    subcategory_key,
    subscription_key,
)
from .models import DIMENSIONS, CanonicalKey, FactRow, Recommendation, normalize_dimension
from .recommendation import commitment_strategy_group, resolve_alternatives

__all__ = [
    "DIMENSIONS",
    "CanonicalKey",
    "FactRow",
    "Recommendation",
    "normalize_dimension",
    "CostScopeError",
    "SchemaError",
    "UnknownDimensionError",
    "subscription_key",
    "category_key",
    "subcategory_key",
    "meter_key",
    "resource_key",
    "flat_resource_key",
    "key_for_row",
    "commitment_strategy_group",
    "resolve_alternatives",
]
