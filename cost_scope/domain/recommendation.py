"""Domain policies for mutually exclusive savings recommendations."""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Iterable, Mapping, Tuple, TypeVar

from cost_scope.domain.models import Recommendation

T = TypeVar("T")

RESERVED_INSTANCE = "RESERVED_INSTANCE"
SAVINGS_PLAN = "SAVINGS_PLAN"


def commitment_strategy_group(item: Recommendation) -> str | None:
    """Name the commitment alternative an item belongs to, or None if independent."""
    text = f"{item.strategy} {item.category}".strip().upper().replace("-", " ").replace("_", " ")
    if "SAVINGS PLAN" in text or "SAVINGSPLAN" in text:
        return SAVINGS_PLAN
    if "RESERVED" in text or "RESERVATION" in text:
        return RESERVED_INSTANCE
    return None


def _default_amount(item: Any) -> float:
    savings = getattr(item, "savings", None)
    if savings is None and isinstance(item, Mapping):
        savings = item.get("savings")
    if savings is None:
        return 0.0
    return float(savings)


def partition_alternatives(
    items: Iterable[T],
    classify: Callable[[T], str | None],
    amount: Callable[[T], float] = _default_amount,
) -> Tuple[Dict[str, float], float]:
    """Return (sum per alternative group, sum of independent items)."""
    groups: Dict[str, float] = {}
    independent = 0.0
    for item in items:
        group = classify(item)
        value = float(amount(item))
        if not math.isfinite(value):
            raise ValueError(f"savings must be a finite number, got {value!r}")
        if group is None:
            independent += value
        else:
            groups[group] = groups.get(group, 0.0) + value
    return groups, independent


def choose_alternative(groups: Dict[str, float]) -> str | None:
    if not groups:
        return None
    return sorted(groups.items(), key=lambda item: (-item[1], item[0]))[0][0]


def resolve_alternatives(
    items: Iterable[T],
    classify: Callable[[T], str | None],
    amount: Callable[[T], float] = _default_amount,
) -> float:
    """Achievable total: the best alternative group plus every independent item.

    Alternative groups are mutually exclusive, so their sums are maximized,
    never added together.
    """
    groups, independent = partition_alternatives(items, classify, amount)
    best = max(groups.values()) if groups else 0.0
    return best + independent
