"""Fact table construction: upstream cost records -> validated, indexed rows."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from decimal import Context, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Iterator, Mapping, Sequence

import polars as pl

from cost_scope.domain.errors import SchemaError
from cost_scope.domain.models import FactRow, normalize_value

logger = logging.getLogger(__name__)

FACT_COLUMNS: list[str] = [
    "row_id",
    "day",
    "subscription_id",
    "subscription_name",
    "category",
    "subcategory",
    "meter",
    "resource",
    "cost_local",
    "cost_usd",
    "currency",
]
# Costs are fixed-point so every way of summing them agrees to the last digit.
COST_PRECISION = 38
COST_SCALE = 10
COST_QUANTUM = Decimal(1).scaleb(-COST_SCALE)
_COST_CONTEXT = Context(prec=COST_PRECISION)
FRAME_SCHEMA: dict[str, Any] = {
    "row_id": pl.Int64,
    "day": pl.Date,
    "subscription_id": pl.Utf8,
    "subscription_name": pl.Utf8,
    "category": pl.Utf8,
    "subcategory": pl.Utf8,
    "meter": pl.Utf8,
    "resource": pl.Utf8,
    "cost_local": pl.Decimal(COST_PRECISION, COST_SCALE),
    "cost_usd": pl.Decimal(COST_PRECISION, COST_SCALE),
    "currency": pl.Utf8,
}
# Field -> accepted upstream spellings, first match wins.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "day": ("day", "date", "Date", "UsageDate", "usage_date", "usageDate"),
    "subscription_id": ("subscription_id", "subscriptionId", "SubscriptionId", "SubscriptionID"),
    "subscription_name": ("subscription_name", "subscriptionName", "SubscriptionName"),
    "category": ("category", "MeterCategory", "meter_category", "meterCategory"),
    "subcategory": (
        "subcategory",
        "MeterSubCategory",
        "MeterSubcategory",
        "meter_subcategory",
        "meterSubcategory",
    ),
    "meter": ("meter", "Meter", "MeterName", "meter_name", "meterName"),
    "resource": ("resource", "ResourceName", "ResourceId", "resource_name", "resource_id", "resourceId"),
    "cost_local": ("cost_local", "costLocal", "CostInBillingCurrency", "PreTaxCost", "Cost"),
    "cost_usd": ("cost_usd", "costUSD", "costUsd", "CostInUsd", "CostUSD", "PreTaxCostUSD"),
    "currency": ("currency", "Currency", "BillingCurrency", "billing_currency"),
}
REQUIRED_FIELDS: tuple[str, ...] = (
    "day",
    "subscription_id",
    "category",
    "subcategory",
    "meter",
    "cost_local",
    "cost_usd",
    "currency",
)
NON_EMPTY_FIELDS: tuple[str, ...] = ("subscription_id", "category", "meter", "currency")


class FactTable:
    """Immutable fact rows plus their polars frame; ``row_id`` == position."""

    def __init__(self, rows: Sequence[FactRow]) -> None:
        self._rows: tuple[FactRow, ...] = tuple(rows)
        self._frame = pl.DataFrame(
            {column: [getattr(row, column) for row in self._rows] for column in FACT_COLUMNS},
            schema=FRAME_SCHEMA,
        )
        self._row_ids: frozenset[int] = frozenset(range(len(self._rows)))

    @property
    def rows(self) -> tuple[FactRow, ...]:
        return self._rows

    @property
    def frame(self) -> pl.DataFrame:
        return self._frame

    @property
    def row_ids(self) -> frozenset[int]:
        return self._row_ids

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[FactRow]:
        return iter(self._rows)

    def row(self, row_id: int) -> FactRow:
        return self._rows[row_id]

    def select(self, row_ids: Iterable[int]) -> pl.DataFrame:
        """Frame restricted to ``row_ids``; unknown ids are ignored."""
        ids = sorted(set(row_ids))
        if not ids:
            return self._frame.clear()
        return self._frame.filter(pl.col("row_id").is_in(ids))


def _lookup(record: Mapping[str, Any], field: str) -> tuple[bool, Any]:
    for alias in FIELD_ALIASES[field]:
        if alias in record:
            return True, record[alias]
    return False, None


def _parse_compact_date(text: str) -> date:
    return date(int(text[:4]), int(text[4:6]), int(text[6:8]))


def _parse_day(value: Any, row_index: int) -> date:
    try:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, int) and not isinstance(value, bool) and len(str(value)) == 8:
            return _parse_compact_date(str(value))
        if isinstance(value, str):
            text = value.strip()
            if len(text) == 8 and text.isdigit():
                return _parse_compact_date(text)
            return date.fromisoformat(text[:10])
    except ValueError:
        pass
    raise SchemaError(f"field 'day' is not a calendar date ({value!r})", row_index=row_index, field="day")


def _parse_cost(value: Any, field: str, row_index: int) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise SchemaError(f"field {field!r} is not a number ({value!r})", row_index=row_index, field=field)
    try:
        if isinstance(value, float):
            # repr keeps the digits the upstream wrote, not the binary expansion
            number = Decimal(repr(value))
        elif isinstance(value, str):
            number = Decimal(value.strip())
        else:
            number = Decimal(value)
    except (InvalidOperation, ValueError) as exc:
        raise SchemaError(f"field {field!r} is not a number ({value!r})", row_index=row_index, field=field) from exc

    if not number.is_finite():
        raise SchemaError(f"field {field!r} is not finite ({value!r})", row_index=row_index, field=field)
    if number < 0:
        raise SchemaError(f"field {field!r} is negative ({value!r})", row_index=row_index, field=field)
    try:
        return number.quantize(COST_QUANTUM, context=_COST_CONTEXT)
    except InvalidOperation as exc:
        raise SchemaError(f"field {field!r} is out of range ({value!r})", row_index=row_index, field=field) from exc


def _parse_text(value: Any, field: str, row_index: int) -> str:
    if value is None:
        raise SchemaError(f"field {field!r} is null", row_index=row_index, field=field)
    if isinstance(value, float) and math.isnan(value):
        raise SchemaError(f"field {field!r} is NaN", row_index=row_index, field=field)
    dimension = "subscription" if field == "subscription_id" else field
    text = normalize_value(dimension, value)
    if field in NON_EMPTY_FIELDS and not text:
        raise SchemaError(f"field {field!r} is empty", row_index=row_index, field=field)
    return text


def parse_fact_row(record: Mapping[str, Any] | FactRow, row_index: int) -> FactRow:
    """Validate one upstream record and assign it ``row_index`` as its row id."""
    if isinstance(record, FactRow):
        record = record.to_record()
    if not isinstance(record, Mapping):
        raise SchemaError(f"expected a mapping, got {type(record).__name__}", row_index=row_index)

    values: Dict[str, Any] = {}
    for field in REQUIRED_FIELDS:
        found, value = _lookup(record, field)
        if not found:
            raise SchemaError(f"missing required field {field!r}", row_index=row_index, field=field)
        values[field] = value

    subscription_id = _parse_text(values["subscription_id"], "subscription_id", row_index)
    _, raw_name = _lookup(record, "subscription_name")
    _, raw_resource = _lookup(record, "resource")
    if isinstance(raw_resource, float) and math.isnan(raw_resource):
        raw_resource = None

    return FactRow(
        row_id=row_index,
        day=_parse_day(values["day"], row_index),
        subscription_id=subscription_id,
        subscription_name=str(raw_name).strip() if raw_name not in (None, "") else subscription_id,
        category=_parse_text(values["category"], "category", row_index),
        subcategory=_parse_text(values["subcategory"], "subcategory", row_index),
        meter=_parse_text(values["meter"], "meter", row_index),
        resource=normalize_value("resource", raw_resource),
        cost_local=_parse_cost(values["cost_local"], "cost_local", row_index),
        cost_usd=_parse_cost(values["cost_usd"], "cost_usd", row_index),
        currency=_parse_text(values["currency"], "currency", row_index),
    )


def _records_from_frame(df: pl.DataFrame) -> list[dict[str, Any]]:
    missing = [
        field for field in REQUIRED_FIELDS if not any(alias in df.columns for alias in FIELD_ALIASES[field])
    ]
    if missing:
        raise SchemaError(f"Missing required columns: {missing}")
    return df.to_dicts()


def build_fact_table(records: Iterable[Mapping[str, Any] | FactRow] | pl.DataFrame) -> FactTable:
    """Validate every record and build the immutable fact table.

    Fails fast on the first invalid row so that no NaN or empty-string value
    reaches the aggregations.
    """
    if isinstance(records, pl.DataFrame):
        source: Iterable[Any] = _records_from_frame(records)
    else:
        source = records

    rows = [parse_fact_row(record, row_index) for row_index, record in enumerate(source)]
    table = FactTable(rows)
    logger.info(
        "Loaded fact table: %d rows, %d subscriptions",
        len(table),
        len({row.subscription_id for row in rows}),
    )
    return table
