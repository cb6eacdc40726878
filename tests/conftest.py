from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from cost_scope.application.engine import Engine, create_engine
from cost_scope.dimension_index import DimensionIndex
from cost_scope.ingestion import FactTable, build_fact_table
from tests.factories import SUB_A, SUB_B, SUB_C, ManualScheduler, fact

# row ids follow list order
FACT_RECORDS: list[dict[str, Any]] = [
    fact(date(2024, 1, 1), SUB_A, "Storage", "Blob", "Hot LRS", "stacct1", 10),
    fact(date(2024, 1, 1), SUB_A, "Compute", "VM", "D2s v3", "vm1", 20),
    fact(date(2024, 1, 1), SUB_B, "Storage", "Blob", "Hot LRS", "stacct2", 5),
    fact(date(2024, 1, 1), SUB_B, "Compute", "VM", "D2s v3", "vm2", 30),
    fact(date(2024, 1, 2), SUB_A, "Storage", "Blob", "Hot LRS", "stacct1", 12),
    fact(date(2024, 1, 2), SUB_A, "Compute", "VM", "D2s v3", "vm1", 20),
    fact(date(2024, 1, 2), SUB_B, "Storage", "Files", "Premium", "share1", 7),
    fact(date(2024, 1, 2), SUB_B, "Compute", "VM", "D2s v3", "vm2", 35),
    fact(date(2024, 1, 3), SUB_C, "Networking", "Bandwidth", "Egress", "", 3),
]


@pytest.fixture()
def fact_records() -> list[dict[str, Any]]:
    return [dict(record) for record in FACT_RECORDS]


@pytest.fixture()
def table(fact_records: list[dict[str, Any]]) -> FactTable:
    return build_fact_table(fact_records)


@pytest.fixture()
def index(table: FactTable) -> DimensionIndex:
    return DimensionIndex.build(table)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def engine(fact_records: list[dict[str, Any]], scheduler: ManualScheduler) -> Engine:
    return create_engine(fact_records, scheduler=scheduler)
