"""Ranking helpers: top-N lists and cost drivers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import AbstractSet, Dict, List, Tuple

from cost_scope.application.reporting.aggregations import outlier_trimmed_total, per_day_series, rollup_by
from cost_scope.application.reporting.metrics import check_limit, safe_pct_change
from cost_scope.ingestion import FactTable


@dataclass(frozen=True)
class DriverChange:
    value: str
    previous: Decimal
    current: Decimal
    delta: Decimal
    pct_change: Decimal | None


def _rank(totals: Dict[str, Decimal], n: int) -> List[Tuple[str, Decimal]]:
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return ordered[:n]


def top_n(
    table: FactTable,
    rows: AbstractSet[int],
    dimension: str,
    n: int,
    measure: str = "cost_local",
) -> List[Tuple[str, Decimal]]:
    """Top ``n`` values by total cost, ties broken by value ascending.

    Always ranks the rows passed in; callers must pass the current active set
    rather than reuse a ranking computed before the selection changed.
    """
    limit = check_limit(n)
    return _rank(rollup_by(table, rows, dimension, measure), limit)


def driver_ranking(
    table: FactTable,
    rows: AbstractSet[int],
    dimension: str,
    n: int,
    measure: str = "cost_local",
) -> List[Tuple[str, Decimal]]:
    """Top ``n`` values by outlier-trimmed per-day cost."""
    limit = check_limit(n)
    series = per_day_series(table, rows, dimension, measure)
    totals = {value: outlier_trimmed_total(costs) for value, costs in series.items()}
    return _rank(totals, limit)


def cost_increase_drivers(
    table: FactTable,
    rows: AbstractSet[int],
    dimension: str,
    n: int,
    measure: str = "cost_local",
) -> List[DriverChange]:
    """Values whose trimmed cost grew most between the two halves of the window.

    The active days are split into two equal-length periods (the middle day
    of an odd-length window belongs to neither); each value's daily series is
    outlier-trimmed per period before the delta is taken.
    """
    limit = check_limit(n)
    days = sorted(set(table.select(rows).get_column("day").to_list()))
    half = len(days) // 2
    if half == 0 or limit == 0:
        return []

    previous_series = per_day_series(table, rows, dimension, measure, days=set(days[:half]))
    current_series = per_day_series(table, rows, dimension, measure, days=set(days[-half:]))

    changes: List[DriverChange] = []
    for value in set(previous_series) | set(current_series):
        previous = outlier_trimmed_total(previous_series.get(value, []))
        current = outlier_trimmed_total(current_series.get(value, []))
        delta = current - previous
        if delta <= 0:
            continue
        changes.append(
            DriverChange(
                value=value,
                previous=previous,
                current=current,
                delta=delta,
                pct_change=safe_pct_change(current, previous),
            )
        )

    changes.sort(key=lambda change: (-change.delta, change.value))
    return changes[:limit]
