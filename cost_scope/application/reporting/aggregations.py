"""Stateless aggregations over an active row set."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import AbstractSet, Dict, List, Sequence

import polars as pl

from cost_scope.application.reporting.metrics import ZERO, check_measure
from cost_scope.domain.models import DIMENSION_COLUMNS, normalize_dimension
from cost_scope.ingestion import FactTable


@dataclass(frozen=True)
class TrendPoint:
    day: date
    cost_local: Decimal
    cost_usd: Decimal


def trend_by_day(table: FactTable, rows: AbstractSet[int]) -> List[TrendPoint]:
    """Daily totals of the given rows, ascending by day."""
    frame = table.select(rows)
    if frame.is_empty():
        return []
    daily = (
        frame.group_by("day")
        .agg([pl.col("cost_local").sum(), pl.col("cost_usd").sum()])
        .sort("day")
    )
    return [TrendPoint(**point) for point in daily.iter_rows(named=True)]


def trend_total(points: Sequence[TrendPoint], measure: str = "cost_local") -> Decimal:
    check_measure(measure)
    return sum((getattr(point, measure) for point in points), ZERO)


def rollup_by(
    table: FactTable,
    rows: AbstractSet[int],
    dimension: str,
    measure: str = "cost_local",
) -> Dict[str, Decimal]:
    """Summed cost per dimension value, for "stacked by X" views."""
    column = DIMENSION_COLUMNS[normalize_dimension(dimension)]
    check_measure(measure)
    frame = table.select(rows)
    if frame.is_empty():
        return {}
    grouped = frame.group_by(column).agg(pl.col(measure).sum()).sort(column)
    return dict(zip(grouped.get_column(column).to_list(), grouped.get_column(measure).to_list()))


def per_day_series(
    table: FactTable,
    rows: AbstractSet[int],
    dimension: str,
    measure: str = "cost_local",
    days: AbstractSet[date] | None = None,
) -> Dict[str, List[Decimal]]:
    """Day-ordered daily costs per dimension value, optionally limited to ``days``."""
    column = DIMENSION_COLUMNS[normalize_dimension(dimension)]
    check_measure(measure)
    frame = table.select(rows)
    if days is not None:
        frame = frame.filter(pl.col("day").is_in(sorted(days)))
    if frame.is_empty():
        return {}
    series = (
        frame.group_by([column, "day"])
        .agg(pl.col(measure).sum())
        .sort([column, "day"])
        .group_by(column, maintain_order=True)
        .agg(pl.col(measure))
    )
    return dict(zip(series.get_column(column).to_list(), series.get_column(measure).to_list()))


def outlier_trimmed_total(per_day_costs: Sequence[Decimal]) -> Decimal:
    """Sum after dropping the single lowest and highest day (3+ points only)."""
    values = sorted(Decimal(cost) for cost in per_day_costs)
    if len(values) < 3:
        return sum(values, ZERO)
    return sum(values[1:-1], ZERO)


def portfolio_trimmed_total(points: Sequence[TrendPoint], measure: str = "cost_local") -> Decimal:
    check_measure(measure)
    return outlier_trimmed_total([getattr(point, measure) for point in points])
