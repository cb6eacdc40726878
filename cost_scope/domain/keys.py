"""Canonical pick-key builders.

Every selection path (chart click, table row, flattened top-N list) must go
through these helpers so that the same logical entity always yields an equal
key, and so that a key compares by exact equality against normalized fact
values.
"""

from __future__ import annotations

from typing import Any, Sequence

from cost_scope.domain.models import (
    DIMENSIONS,
    KEY_SEPARATOR,
    WILDCARD,
    CanonicalKey,
    FactRow,
    normalize_dimension,
    normalize_value,
)


def _context(subscription_id: Any | None) -> str:
    if subscription_id is None:
        return WILDCARD
    context = normalize_value("subscription", subscription_id)
    return context or WILDCARD


def _segment(dimension: str, value: Any) -> str:
    if value is None:
        return WILDCARD
    text = normalize_value(dimension, value)
    if text == WILDCARD:
        return WILDCARD
    return text


def build_key(dimension: str, parts: Sequence[Any]) -> CanonicalKey:
    """Build a key from raw hierarchy segments (``None`` or ``*`` means wildcard)."""
    dim = normalize_dimension(dimension)
    depth = DIMENSIONS.index(dim) + 1
    if len(parts) != depth:
        raise ValueError(f"A {dim} key needs {depth} segments, got {len(parts)}")

    normalized = tuple(_segment(level, part) for level, part in zip(DIMENSIONS, parts))
    if dim == "subscription" and normalized[0] in {WILDCARD, ""}:
        raise ValueError("A subscription key needs a concrete subscription id")
    for level, part in zip(DIMENSIONS[: depth - 1], normalized[: depth - 1]):
        if KEY_SEPARATOR in part:
            raise ValueError(f"{level} segment {part!r} may not contain {KEY_SEPARATOR!r}")
    return CanonicalKey(dimension=dim, parts=normalized)


def subscription_key(subscription_id: Any) -> CanonicalKey:
    return build_key("subscription", [subscription_id])


def category_key(category: Any, subscription_id: Any | None = None) -> CanonicalKey:
    """Category pick; ``subscription_id=None`` means picked from the all-subscriptions view."""
    return build_key("category", [_context(subscription_id), category])


def subcategory_key(category: Any, subcategory: Any, subscription_id: Any | None = None) -> CanonicalKey:
    return build_key("subcategory", [_context(subscription_id), category, subcategory])


def meter_key(
    category: Any,
    subcategory: Any,
    meter: Any,
    subscription_id: Any | None = None,
) -> CanonicalKey:
    return build_key("meter", [_context(subscription_id), category, subcategory, meter])


def resource_key(
    category: Any,
    subcategory: Any,
    meter: Any,
    resource: Any,
    subscription_id: Any | None = None,
) -> CanonicalKey:
    return build_key("resource", [_context(subscription_id), category, subcategory, meter, resource])


def flat_resource_key(resource: Any) -> CanonicalKey:
    """Resource picked from a flattened "Top N resources" list."""
    return build_key("resource", [WILDCARD, WILDCARD, WILDCARD, WILDCARD, resource])


def key_for_row(row: FactRow, dimension: str, scoped: bool = True) -> CanonicalKey:
    """Key of the entity ``row`` belongs to at ``dimension`` level.

    ``scoped=False`` builds the global (all-subscriptions) variant.
    """
    dim = normalize_dimension(dimension)
    parts = list(row.path(dim))
    if dim != "subscription" and not scoped:
        parts[0] = WILDCARD
    return build_key(dim, parts)


def coerce_key(dimension: str, key: CanonicalKey | str) -> CanonicalKey:
    """Accept a key object or its token and check it belongs to ``dimension``."""
    dim = normalize_dimension(dimension)
    if isinstance(key, CanonicalKey):
        if key.dimension != dim:
            raise ValueError(f"Key {key.token!r} is a {key.dimension} key, not a {dim} key")
        return key
    if isinstance(key, str):
        return CanonicalKey.parse(dim, key)
    raise TypeError(f"Expected CanonicalKey or str, got {type(key).__name__}")
