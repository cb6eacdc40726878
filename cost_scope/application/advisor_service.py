"""Application service for advisor-style savings rollups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Any, Callable, Dict, Iterable, Mapping

from cost_scope.domain.models import Recommendation
from cost_scope.domain.recommendation import (
    choose_alternative,
    commitment_strategy_group,
    partition_alternatives,
)


@dataclass(frozen=True)
class AdvisorSummary:
    group_totals: Dict[str, float]
    chosen_group: str | None
    independent_total: float
    achievable_total: float
    item_count: int


def _as_recommendation(item: Recommendation | Mapping[str, Any]) -> Recommendation:
    if isinstance(item, Recommendation):
        return item
    return Recommendation.from_row(item)


def summarize_recommendations(
    items: Iterable[Recommendation | Mapping[str, Any]],
    classify: Callable[[Recommendation], str | None] = commitment_strategy_group,
    subscriptions: AbstractSet[str] | None = None,
) -> AdvisorSummary:
    """Roll up savings, keeping only the best of the mutually exclusive groups.

    ``subscriptions`` limits the rollup to items of those subscriptions, so
    the advisor cards follow the active scope.
    """
    recommendations = [_as_recommendation(item) for item in items]
    if subscriptions is not None:
        recommendations = [item for item in recommendations if item.subscription_id in subscriptions]

    groups, independent = partition_alternatives(recommendations, classify, lambda item: item.savings)
    chosen = choose_alternative(groups)
    best = groups[chosen] if chosen is not None else 0.0
    return AdvisorSummary(
        group_totals=groups,
        chosen_group=chosen,
        independent_total=independent,
        achievable_total=best + independent,
        item_count=len(recommendations),
    )
