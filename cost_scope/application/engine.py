"""Engine facade: owns selection state and serves every view from one active row set."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Tuple, Union

import polars as pl

from cost_scope.application.advisor_service import AdvisorSummary, summarize_recommendations
from cost_scope.application.refresh import RefreshCoordinator, Scheduler
from cost_scope.application.reporting.aggregations import TrendPoint, rollup_by, trend_by_day
from cost_scope.application.reporting.metrics import DEFAULT_MEASURE, DEFAULT_TOP_N, check_limit, check_measure
from cost_scope.application.reporting.selectors import DriverChange, cost_increase_drivers, driver_ranking, top_n
from cost_scope.application.resolver import active_rows
from cost_scope.application.selection import PickSnapshot, PickStore, Scope
from cost_scope.dimension_index import DimensionIndex
from cost_scope.domain.models import CanonicalKey, FactRow, Recommendation, normalize_dimension
from cost_scope.domain.recommendation import commitment_strategy_group
from cost_scope.ingestion import FactTable, build_fact_table

logger = logging.getLogger(__name__)

FactInput = Union[Iterable[Union[Mapping[str, Any], FactRow]], pl.DataFrame]
RankSpec = Tuple[str, int]


def _normalize_ranks(entries: Iterable[str | RankSpec]) -> Tuple[RankSpec, ...]:
    normalized: List[RankSpec] = []
    for entry in entries:
        if isinstance(entry, str):
            normalized.append((normalize_dimension(entry), DEFAULT_TOP_N))
        else:
            dimension, n = entry
            normalized.append((normalize_dimension(dimension), check_limit(n)))
    return tuple(normalized)


@dataclass(frozen=True)
class ViewSpec:
    """Aggregations the currently displayed view needs on every refresh."""

    trend: bool = True
    rollups: Tuple[str, ...] = ()
    top_n: Tuple[str | RankSpec, ...] = ()
    drivers: Tuple[str | RankSpec, ...] = ()
    increase_drivers: Tuple[str | RankSpec, ...] = ()
    measure: str = DEFAULT_MEASURE

    def normalized(self) -> "ViewSpec":
        return ViewSpec(
            trend=self.trend,
            rollups=tuple(normalize_dimension(dim) for dim in self.rollups),
            top_n=_normalize_ranks(self.top_n),
            drivers=_normalize_ranks(self.drivers),
            increase_drivers=_normalize_ranks(self.increase_drivers),
            measure=check_measure(self.measure),
        )


@dataclass(frozen=True)
class RefreshResult:
    active_rows: FrozenSet[int]
    view: ViewSpec
    trend: List[TrendPoint] | None = None
    rollups: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    top_n: Dict[str, List[Tuple[str, Decimal]]] = field(default_factory=dict)
    drivers: Dict[str, List[Tuple[str, Decimal]]] = field(default_factory=dict)
    increase_drivers: Dict[str, List[DriverChange]] = field(default_factory=dict)


class Engine:
    """Interactive cost query engine.

    Scope and picks are private; every mutation goes through the methods
    below and marks the engine dirty for one coalesced refresh pass.
    """

    def __init__(self, table: FactTable, view: ViewSpec | None = None, scheduler: Scheduler | None = None) -> None:
        self._table = table
        self._index = DimensionIndex.build(table)
        self._scope = Scope()
        self._picks = PickStore()
        self._view = (view or ViewSpec()).normalized()
        self._coordinator: RefreshCoordinator[RefreshResult] = RefreshCoordinator(self._recompute, scheduler=scheduler)

    @property
    def table(self) -> FactTable:
        return self._table

    @property
    def index(self) -> DimensionIndex:
        return self._index

    @property
    def scope(self) -> FrozenSet[str]:
        return self._scope.subscriptions

    @property
    def picks(self) -> PickSnapshot:
        return self._picks.snapshot()

    @property
    def view(self) -> ViewSpec:
        return self._view

    @property
    def refresh_state(self) -> str:
        return self._coordinator.state

    @property
    def refresh_count(self) -> int:
        return self._coordinator.pass_count

    # Queries

    def active_rows(self) -> FrozenSet[int]:
        return active_rows(self._index, self._scope.subscriptions, self._picks.snapshot())

    def active_facts(self) -> List[FactRow]:
        return [self._table.row(row_id) for row_id in sorted(self.active_rows())]

    def active_subscriptions(self) -> FrozenSet[str]:
        return frozenset(self._table.row(row_id).subscription_id for row_id in self.active_rows())

    def trend(self) -> List[TrendPoint]:
        return trend_by_day(self._table, self.active_rows())

    def rollup(self, dimension: str, measure: str | None = None) -> Dict[str, Decimal]:
        return rollup_by(self._table, self.active_rows(), dimension, measure or DEFAULT_MEASURE)

    def top_n(self, dimension: str, n: int | None = None, measure: str | None = None) -> List[Tuple[str, Decimal]]:
        limit = DEFAULT_TOP_N if n is None else n
        return top_n(self._table, self.active_rows(), dimension, limit, measure or DEFAULT_MEASURE)

    def drivers(self, dimension: str, n: int | None = None, measure: str | None = None) -> List[Tuple[str, Decimal]]:
        limit = DEFAULT_TOP_N if n is None else n
        return driver_ranking(self._table, self.active_rows(), dimension, limit, measure or DEFAULT_MEASURE)

    def increase_drivers(self, dimension: str, n: int | None = None, measure: str | None = None) -> List[DriverChange]:
        limit = DEFAULT_TOP_N if n is None else n
        return cost_increase_drivers(self._table, self.active_rows(), dimension, limit, measure or DEFAULT_MEASURE)

    def advisor_summary(
        self,
        items: Iterable[Recommendation | Mapping[str, Any]],
        classify: Callable[[Recommendation], str | None] = commitment_strategy_group,
    ) -> AdvisorSummary:
        return summarize_recommendations(items, classify=classify, subscriptions=self.active_subscriptions())

    # Mutators

    def set_scope(self, subscription_ids: Iterable[Any]) -> None:
        if self._scope.replace(subscription_ids):
            self._coordinator.request()

    def toggle_scope(self, subscription_id: Any) -> bool:
        in_scope = self._scope.toggle(subscription_id)
        self._coordinator.request()
        return in_scope

    def clear_scope(self) -> None:
        if self._scope.clear():
            self._coordinator.request()

    def toggle_pick(self, dimension: str, key: CanonicalKey | str) -> bool:
        picked = self._picks.toggle(dimension, key)
        self._coordinator.request()
        return picked

    def add_picks(self, dimension: str, keys: Iterable[CanonicalKey | str]) -> int:
        """Pick several keys at once (drag-select); already-picked keys stay picked."""
        added = sum(1 for key in keys if self._picks.add(dimension, key))
        if added:
            self._coordinator.request()
        return added

    def clear_all(self) -> None:
        """Clear selection: empties all five pick sets; scope is untouched."""
        if self._picks.clear():
            self._coordinator.request()

    def set_view(self, view: ViewSpec) -> None:
        self._view = view.normalized()
        self._coordinator.request()

    def replace_facts(self, fact_rows: FactInput) -> None:
        """Load new report data; the table and index are rebuilt, selections kept."""
        self._table = build_fact_table(fact_rows)
        self._index = DimensionIndex.build(self._table)
        logger.info("Replaced fact table; %d rows now loaded", len(self._table))
        self._coordinator.request()

    # Refresh

    def on_refresh_ready(self, callback: Callable[[RefreshResult], Any]) -> Callable[[], None]:
        return self._coordinator.subscribe(callback)

    def flush(self) -> RefreshResult | None:
        return self._coordinator.flush()

    def _recompute(self) -> RefreshResult:
        rows = self.active_rows()
        view = self._view
        return RefreshResult(
            active_rows=rows,
            view=view,
            trend=trend_by_day(self._table, rows) if view.trend else None,
            rollups={dim: rollup_by(self._table, rows, dim, view.measure) for dim in view.rollups},
            top_n={dim: top_n(self._table, rows, dim, n, view.measure) for dim, n in view.top_n},
            drivers={dim: driver_ranking(self._table, rows, dim, n, view.measure) for dim, n in view.drivers},
            increase_drivers={
                dim: cost_increase_drivers(self._table, rows, dim, n, view.measure)
                for dim, n in view.increase_drivers
            },
        )


def create_engine(
    fact_rows: FactInput,
    view: ViewSpec | None = None,
    scheduler: Scheduler | None = None,
) -> Engine:
    """Validate the fact rows, build the dimension index once and return an engine."""
    return Engine(build_fact_table(fact_rows), view=view, scheduler=scheduler)
