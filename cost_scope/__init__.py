"""Hierarchical scope/pick cost aggregation engine."""

from .application import Engine, RefreshResult, ViewSpec, create_engine, summarize_recommendations
from .dimension_index import DimensionIndex
from .domain import (
    CanonicalKey,
    FactRow,
    Recommendation,
    SchemaError,
    UnknownDimensionError,
    category_key,
    flat_resource_key,
    meter_key,
    resolve_alternatives,
    resource_key,
    subcategory_key,
    subscription_key,
)
from .ingestion import FactTable, build_fact_table

__all__ = [
    "Engine",
    "RefreshResult",
    "ViewSpec",
    "create_engine",
    "summarize_recommendations",
    "DimensionIndex",
    "FactTable",
    "build_fact_table",
    "CanonicalKey",
    "FactRow",
    "Recommendation",
    "SchemaError",
    "UnknownDimensionError",
    "subscription_key",
    "category_key",
    "subcategory_key",
    "meter_key",
    "resource_key",
    "flat_resource_key",
    "resolve_alternatives",
]
