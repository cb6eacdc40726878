from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from cost_scope.application.engine import Engine, RefreshResult, ViewSpec, create_engine
from cost_scope.application.reporting.metrics import DEFAULT_TOP_N
from cost_scope.domain.errors import SchemaError, UnknownDimensionError
from cost_scope.domain.keys import category_key, flat_resource_key, subscription_key
from cost_scope.domain.models import Recommendation
from tests.factories import SUB_A, SUB_B, SUB_C, ManualScheduler, fact


def _rendered(engine: Engine, scheduler: ManualScheduler) -> list[RefreshResult]:
    renders: list[RefreshResult] = []
    engine.on_refresh_ready(renders.append)
    scheduler.tick()
    return renders


def test_fresh_engine_shows_everything(engine: Engine) -> None:
    assert engine.active_rows() == frozenset(range(9))
    assert engine.scope == frozenset()
    assert engine.picks.is_empty()
    assert engine.refresh_state == "IDLE"


def test_subscription_pick_does_not_cascade(engine: Engine) -> None:
    engine.toggle_pick("subscriptions", subscription_key(SUB_A))

    picks = engine.picks
    assert picks.subscriptions == frozenset({subscription_key(SUB_A)})
    assert len(picks.categories) == 0
    assert len(picks.subcategories) == 0
    assert len(picks.meters) == 0
    assert len(picks.resources) == 0
    assert engine.active_rows() == frozenset({0, 1, 4, 5})


def test_toggle_is_idempotent_by_key_equality(engine: Engine) -> None:
    assert engine.toggle_pick("categories", category_key("Storage", "SUB-A")) is True
    assert engine.toggle_pick("category", "sub-a|Storage") is False
    assert engine.picks.is_empty()


def test_global_and_scoped_picks_are_separate_selections(engine: Engine) -> None:
    engine.toggle_pick("categories", category_key("Storage"))
    engine.toggle_pick("categories", category_key("Storage", SUB_A))

    assert len(engine.picks.categories) == 2

    engine.toggle_pick("categories", category_key("Storage"))

    assert engine.picks.categories == frozenset({category_key("Storage", SUB_A)})
    assert engine.active_rows() == frozenset({0, 4})


def test_scope_and_picks_are_orthogonal(engine: Engine) -> None:
    engine.set_scope([SUB_A, SUB_B])
    engine.toggle_pick("resources", flat_resource_key("vm1"))

    engine.clear_all()
    assert engine.scope == frozenset({SUB_A, SUB_B})
    assert engine.picks.is_empty()

    engine.toggle_pick("resources", flat_resource_key("vm1"))
    engine.clear_scope()
    assert engine.scope == frozenset()
    assert engine.picks.resources == frozenset({flat_resource_key("vm1")})


def test_toggle_scope(engine: Engine) -> None:
    assert engine.toggle_scope("SUB-C") is True
    assert engine.active_rows() == frozenset({8})
    assert engine.toggle_scope(SUB_C) is False
    assert engine.active_rows() == frozenset(range(9))


def test_top_n_is_recomputed_after_narrowing(engine: Engine) -> None:
    before = engine.top_n("resource", 3)
    assert before[0][0] == "vm2"

    engine.set_scope([SUB_A])
    after = engine.top_n("resource", 3)

    active = engine.active_rows()
    assert [value for value, _ in after] == ["vm1", "stacct1"]
    for value, _ in after:
        assert engine.index.rows_for("resource", value) & active


def test_engine_views_follow_active_rows(engine: Engine) -> None:
    engine.toggle_pick("categories", category_key("Compute"))

    assert engine.rollup("subscription") == {SUB_A: Decimal(40), SUB_B: Decimal(65)}
    assert sum(engine.rollup("meter").values()) == sum(point.cost_local for point in engine.trend())
    assert engine.drivers("resource", 1) == [("vm2", Decimal(65))]
    assert engine.active_subscriptions() == frozenset({SUB_A, SUB_B})
    assert [row.row_id for row in engine.active_facts()] == [1, 3, 5, 7]


def test_increase_drivers_on_engine(engine: Engine) -> None:
    engine.set_scope([SUB_A, SUB_B])

    changes = engine.increase_drivers("resource")

    # day 1 against day 2; vm1 is flat and stacct2 disappears
    assert [change.value for change in changes] == ["share1", "vm2", "stacct1"]
    assert changes[0].delta == Decimal(7)
    assert changes[0].pct_change is None


def test_unknown_dimension_is_rejected(engine: Engine) -> None:
    with pytest.raises(UnknownDimensionError):
        engine.rollup("region")
    with pytest.raises(UnknownDimensionError):
        engine.top_n("resourceGroup", 5)
    with pytest.raises(UnknownDimensionError):
        engine.toggle_pick("tags", "env|prod")
    with pytest.raises(UnknownDimensionError):
        engine.set_view(ViewSpec(rollups=("region",)))
    assert engine.picks.is_empty()


def test_mismatched_key_dimension_is_rejected(engine: Engine) -> None:
    with pytest.raises(ValueError):
        engine.toggle_pick("meters", category_key("Storage"))


def test_create_engine_fails_fast_on_bad_rows(fact_records: list[dict[str, Any]]) -> None:
    fact_records[5]["costUSD"] = "n/a"

    with pytest.raises(SchemaError) as exc_info:
        create_engine(fact_records)

    assert exc_info.value.row_index == 5


def test_ten_rapid_toggles_render_once(engine: Engine, scheduler: ManualScheduler) -> None:
    renders: list[RefreshResult] = []
    engine.on_refresh_ready(renders.append)

    for name in ["vm1", "vm2", "stacct1", "stacct2", "share1", "vm1", "vm2", "x", "y", "vm1"]:
        engine.toggle_pick("resources", flat_resource_key(name))

    assert len(scheduler.pending) == 1
    scheduler.tick()

    assert len(renders) == 1
    assert engine.refresh_count == 1
    # vm1 toggled three times stays picked, vm2 toggled twice does not
    assert renders[0].active_rows == frozenset({0, 1, 2, 4, 5, 6})


def test_no_op_mutations_do_not_schedule(engine: Engine, scheduler: ManualScheduler) -> None:
    engine.set_scope([])
    engine.clear_all()
    engine.clear_scope()

    assert scheduler.pending == []


def test_refresh_runs_only_the_view_aggregations(engine: Engine, scheduler: ManualScheduler) -> None:
    engine.set_view(ViewSpec(trend=False, rollups=("categories",), top_n=(("resource", 2),)))
    engine.set_scope([SUB_B])

    renders = _rendered(engine, scheduler)

    assert len(renders) == 1
    result = renders[0]
    assert result.trend is None
    assert result.rollups == {"category": {"Compute": Decimal(65), "Storage": Decimal(12)}}
    assert result.top_n == {"resource": [("vm2", Decimal(65)), ("share1", Decimal(7))]}
    assert result.drivers == {}
    assert result.increase_drivers == {}


def test_default_view_renders_trend(engine: Engine, scheduler: ManualScheduler) -> None:
    engine.toggle_pick("subscriptions", SUB_C)

    result = _rendered(engine, scheduler)[0]

    assert result.trend is not None
    assert [point.day for point in result.trend] == [date(2024, 1, 3)]
    assert result.view == ViewSpec().normalized()


def test_view_spec_defaults_top_n_size() -> None:
    view = ViewSpec(top_n=("resources",), drivers=(("meters", 3),)).normalized()

    assert view.top_n == (("resource", DEFAULT_TOP_N),)
    assert view.drivers == (("meter", 3),)


def test_flush_without_scheduler(fact_records: list[dict[str, Any]]) -> None:
    engine = create_engine(fact_records)
    renders: list[RefreshResult] = []
    engine.on_refresh_ready(renders.append)

    engine.set_scope([SUB_A])
    result = engine.flush()

    assert result is not None
    assert result.active_rows == frozenset({0, 1, 4, 5})
    assert renders == [result]


def test_replace_facts_rebuilds_index(engine: Engine, scheduler: ManualScheduler) -> None:
    engine.toggle_pick("resources", flat_resource_key("vm9"))
    scheduler.tick()

    engine.replace_facts(
        [
            fact(date(2024, 2, 1), SUB_A, "Compute", "VM", "D4s v5", "vm9", 50),
            fact(date(2024, 2, 1), SUB_A, "Compute", "VM", "D4s v5", "vm8", 5),
        ]
    )

    assert len(engine.table) == 2
    assert engine.active_rows() == frozenset({0})
    assert len(scheduler.pending) == 1


def test_advisor_summary_follows_active_scope(engine: Engine) -> None:
    items = [
        Recommendation(SUB_A, "vm1", "Compute", "Reserved VM Instance", 500.0),
        Recommendation(SUB_A, "vm1", "Compute", "Savings plan", 650.0),
        Recommendation(SUB_B, "vm2", "Compute", "Savings plan", 900.0),
        Recommendation(SUB_A, "stacct1", "Storage", "Move to cool tier", 100.0),
    ]

    engine.set_scope([SUB_A])
    summary = engine.advisor_summary(items)

    assert summary.achievable_total == pytest.approx(750.0)
    assert summary.item_count == 3


def test_add_picks_keeps_existing_and_schedules_once(engine: Engine, scheduler: ManualScheduler) -> None:
    engine.toggle_pick("resources", flat_resource_key("vm1"))
    scheduler.tick()

    added = engine.add_picks("resources", [flat_resource_key("vm1"), "*|*|*|*|share1", flat_resource_key("vm2")])

    assert added == 2
    assert len(scheduler.pending) == 1
    assert engine.active_rows() == frozenset({1, 3, 5, 6, 7})
    assert engine.add_picks("resources", [flat_resource_key("vm2")]) == 0
