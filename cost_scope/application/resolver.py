"""Active Row Resolver: scope (AND) combined with picks (OR) over the index."""

from __future__ import annotations

import logging
from typing import AbstractSet, FrozenSet

from cost_scope.application.selection import PickSnapshot
from cost_scope.dimension_index import DimensionIndex
from cost_scope.domain.models import DIMENSIONS

logger = logging.getLogger(__name__)


def scoped_rows(index: DimensionIndex, scope: AbstractSet[str]) -> FrozenSet[int]:
    """All rows when ``scope`` is empty, else the rows of the scoped subscriptions."""
    if not scope:
        return index.all_rows
    rows: set[int] = set()
    for subscription_id in scope:
        rows.update(index.rows_for("subscription", subscription_id))
    return frozenset(rows)


def picked_rows(index: DimensionIndex, picks: PickSnapshot, dimension: str, within: FrozenSet[int]) -> FrozenSet[int]:
    """Union of the rows of every key picked on ``dimension``, clipped to ``within``."""
    rows: set[int] = set()
    for key in picks.for_dimension(dimension):
        matched = index.rows_for_key(key)
        if not matched:
            logger.warning("Pick %s=%r matches no rows in the fact table", dimension, key.token)
        rows.update(matched)
    return frozenset(rows) & within


def active_rows(index: DimensionIndex, scope: AbstractSet[str], picks: PickSnapshot) -> FrozenSet[int]:
    """Resolve the active row set from scratch.

    Scope is a hard boundary; picks can only re-admit rows already in scope.
    Within a dimension and across dimensions picks are unioned, and a
    subscription pick admits that subscription's rows as-is.
    """
    in_scope = scoped_rows(index, scope)
    if picks.is_empty():
        logger.debug("Resolved %d active rows (scope only, %d subscriptions)", len(in_scope), len(scope))
        return in_scope

    result: set[int] = set()
    for dim in DIMENSIONS:
        if picks.for_dimension(dim):
            result.update(picked_rows(index, picks, dim, in_scope))

    logger.debug(
        "Resolved %d active rows from %d scoped rows and %d picks",
        len(result),
        len(in_scope),
        picks.total(),
    )
    return frozenset(result)
