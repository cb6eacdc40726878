"""Domain models for cost facts, pick keys and advisor items."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Tuple

from cost_scope.domain.errors import UnknownDimensionError

# Hierarchy order; a canonical key for dimension d carries one segment per
# dimension up to and including d.
DIMENSIONS: Tuple[str, ...] = ("subscription", "category", "subcategory", "meter", "resource")
DIMENSION_COLUMNS: Dict[str, str] = {
    "subscription": "subscription_id",
    "category": "category",
    "subcategory": "subcategory",
    "meter": "meter",
    "resource": "resource",
}
PICK_SETS: Dict[str, str] = {
    "subscription": "subscriptions",
    "category": "categories",
    "subcategory": "subcategories",
    "meter": "meters",
    "resource": "resources",
}
MEASURES: Tuple[str, ...] = ("cost_local", "cost_usd")
WILDCARD = "*"
KEY_SEPARATOR = "|"

_DIMENSION_ALIASES: Dict[str, str] = {
    **{dim: dim for dim in DIMENSIONS},
    **{plural: dim for dim, plural in PICK_SETS.items()},
}


def _to_optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_savings(value: Any) -> float:
    savings = _to_optional_float(value)
    if savings is None:
        return 0.0
    if not math.isfinite(savings):
        raise ValueError(f"savings must be a finite number, got {value!r}")
    return savings


def normalize_dimension(dimension: Any) -> str:
    """Map a singular or pick-set plural dimension name to its canonical form."""
    if not isinstance(dimension, str):
        raise UnknownDimensionError(dimension)
    normalized = _DIMENSION_ALIASES.get(dimension.strip().lower())
    if normalized is None:
        raise UnknownDimensionError(dimension)
    return normalized


def normalize_value(dimension: str, value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if dimension == "subscription":
        # Azure subscription GUIDs are case-insensitive.
        return text.lower()
    return text


@dataclass(frozen=True)
class FactRow:
    """One daily cost observation; ``row_id`` is its position in the fact table."""

    row_id: int
    day: date
    subscription_id: str
    subscription_name: str
    category: str
    subcategory: str
    meter: str
    resource: str
    cost_local: Decimal
    cost_usd: Decimal
    currency: str

    def value(self, dimension: str) -> str:
        return getattr(self, DIMENSION_COLUMNS[normalize_dimension(dimension)])

    def path(self, dimension: str) -> Tuple[str, ...]:
        dim = normalize_dimension(dimension)
        depth = DIMENSIONS.index(dim) + 1
        return tuple(self.value(name) for name in DIMENSIONS[:depth])

    def to_record(self) -> Dict[str, Any]:
        return {
            "row_id": self.row_id,
            "day": self.day,
            "subscription_id": self.subscription_id,
            "subscription_name": self.subscription_name,
            "category": self.category,
            "subcategory": self.subcategory,
            "meter": self.meter,
            "resource": self.resource,
            "cost_local": self.cost_local,
            "cost_usd": self.cost_usd,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class CanonicalKey:
    """Context-qualified identity of a pick.

    ``parts`` holds one segment per hierarchy level up to ``dimension``; the
    first segment of a non-subscription key is its subscription context, where
    ``*`` means the pick was made across all subscriptions.
    """

    dimension: str
    parts: Tuple[str, ...]

    @property
    def token(self) -> str:
        return KEY_SEPARATOR.join(self.parts)

    @property
    def context(self) -> str:
        return self.parts[0]

    @property
    def is_global(self) -> bool:
        return self.dimension != "subscription" and self.context == WILDCARD

    def segments(self) -> List[Tuple[str, str]]:
        """(dimension, value) pairs that constrain the match; wildcards are skipped."""
        return [(dim, part) for dim, part in zip(DIMENSIONS, self.parts) if part != WILDCARD]

    @classmethod
    def parse(cls, dimension: str, token: str) -> "CanonicalKey":
        from cost_scope.domain.keys import build_key

        dim = normalize_dimension(dimension)
        depth = DIMENSIONS.index(dim) + 1
        # The last segment keeps any separator it contains (resource ids).
        parts = str(token).split(KEY_SEPARATOR, depth - 1)
        if len(parts) != depth:
            raise ValueError(f"Malformed {dim} key {token!r}: expected {depth} '|'-separated segments")
        return build_key(dim, parts)

    def __str__(self) -> str:
        return self.token


@dataclass(frozen=True)
class Recommendation:
    """Advisor line item with its estimated savings."""

    subscription_id: str
    resource: str
    category: str
    strategy: str
    savings: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Recommendation":
        return cls(
            subscription_id=normalize_value(
                "subscription", row.get("subscription_id", row.get("subscriptionId", ""))
            ),
            resource=normalize_value("resource", row.get("resource", "")),
            category=str(row.get("category", "") or "").strip(),
            strategy=str(row.get("strategy", "") or "").strip(),
            savings=_parse_savings(row.get("savings")),
        )
