"""Dimension Index: exact-value lookup from dimension values to row ids."""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

import polars as pl

from cost_scope.domain.models import DIMENSION_COLUMNS, DIMENSIONS, CanonicalKey, normalize_dimension, normalize_value
from cost_scope.ingestion import FactTable

logger = logging.getLogger(__name__)

EMPTY: FrozenSet[int] = frozenset()


class DimensionIndex:
    """Per-dimension value -> row-id sets, built once per fact table.

    Lookups are exact equality on the normalized field value; there is no
    prefix, substring or pattern matching anywhere in the index.
    """

    DIMENSIONS: Tuple[str, ...] = DIMENSIONS

    def __init__(self, postings: Dict[str, Dict[str, FrozenSet[int]]], all_rows: FrozenSet[int]) -> None:
        self._postings = postings
        self._all_rows = all_rows

    @classmethod
    def build(cls, table: FactTable) -> "DimensionIndex":
        postings: Dict[str, Dict[str, FrozenSet[int]]] = {}
        frame = table.frame
        for dim in cls.DIMENSIONS:
            column = DIMENSION_COLUMNS[dim]
            grouped = frame.group_by(column).agg(pl.col("row_id"))
            postings[dim] = {
                value: frozenset(row_ids)
                for value, row_ids in zip(grouped.get_column(column).to_list(), grouped.get_column("row_id").to_list())
            }
        index = cls(postings, table.row_ids)
        logger.debug(
            "Built dimension index over %d rows: %s",
            len(table),
            {dim: len(values) for dim, values in postings.items()},
        )
        return index

    @property
    def all_rows(self) -> FrozenSet[int]:
        return self._all_rows

    def rows_for(self, dimension: str, raw_value: Any) -> FrozenSet[int]:
        dim = normalize_dimension(dimension)
        return self._postings[dim].get(normalize_value(dim, raw_value), EMPTY)

    def rows_for_key(self, key: CanonicalKey) -> FrozenSet[int]:
        """Rows matching every non-wildcard segment of ``key``."""
        lookups = [self._postings[dim].get(value, EMPTY) for dim, value in key.segments()]
        if not lookups:
            return self._all_rows
        lookups.sort(key=len)
        result = lookups[0]
        for rows in lookups[1:]:
            if not result:
                break
            result = result & rows
        return result

    def values(self, dimension: str) -> List[str]:
        dim = normalize_dimension(dimension)
        return sorted(self._postings[dim])

