"""Selection state: subscription scope and per-dimension pick sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Set

from cost_scope.domain.keys import coerce_key
from cost_scope.domain.models import DIMENSIONS, PICK_SETS, CanonicalKey, normalize_dimension, normalize_value


class Scope:
    """AND-filter over subscription ids; empty means every subscription."""

    def __init__(self) -> None:
        self._subscriptions: Set[str] = set()

    @property
    def subscriptions(self) -> FrozenSet[str]:
        return frozenset(self._subscriptions)

    def replace(self, subscription_ids: Iterable[Any]) -> bool:
        """Replace the scope; returns whether it changed."""
        updated = {normalize_value("subscription", sid) for sid in subscription_ids}
        updated.discard("")
        if updated == self._subscriptions:
            return False
        self._subscriptions = updated
        return True

    def toggle(self, subscription_id: Any) -> bool:
        """Flip one subscription checkbox; returns whether it is now in scope."""
        sid = normalize_value("subscription", subscription_id)
        if not sid:
            raise ValueError("subscription id must be non-empty")
        if sid in self._subscriptions:
            self._subscriptions.remove(sid)
            return False
        self._subscriptions.add(sid)
        return True

    def clear(self) -> bool:
        changed = bool(self._subscriptions)
        self._subscriptions.clear()
        return changed


@dataclass(frozen=True)
class PickSnapshot:
    """Read-only view of the pick store."""

    subscriptions: FrozenSet[CanonicalKey] = frozenset()
    categories: FrozenSet[CanonicalKey] = frozenset()
    subcategories: FrozenSet[CanonicalKey] = frozenset()
    meters: FrozenSet[CanonicalKey] = frozenset()
    resources: FrozenSet[CanonicalKey] = frozenset()

    def for_dimension(self, dimension: str) -> FrozenSet[CanonicalKey]:
        return getattr(self, PICK_SETS[normalize_dimension(dimension)])

    def is_empty(self) -> bool:
        return not any(self.for_dimension(dim) for dim in DIMENSIONS)

    def total(self) -> int:
        return sum(len(self.for_dimension(dim)) for dim in DIMENSIONS)


class PickStore:
    """Five independent sets of canonical keys, one per dimension.

    A key only ever lands in the set of its own dimension; nothing here
    derives child-dimension picks from a parent pick.
    """

    def __init__(self) -> None:
        self._picks: Dict[str, Set[CanonicalKey]] = {dim: set() for dim in DIMENSIONS}

    def toggle(self, dimension: str, key: CanonicalKey | str) -> bool:
        """Add or remove ``key``; returns whether it is now picked."""
        canonical = coerce_key(dimension, key)
        picks = self._picks[canonical.dimension]
        if canonical in picks:
            picks.remove(canonical)
            return False
        picks.add(canonical)
        return True

    def add(self, dimension: str, key: CanonicalKey | str) -> bool:
        canonical = coerce_key(dimension, key)
        picks = self._picks[canonical.dimension]
        if canonical in picks:
            return False
        picks.add(canonical)
        return True

    def clear(self) -> bool:
        changed = any(self._picks.values())
        for picks in self._picks.values():
            picks.clear()
        return changed

    def snapshot(self) -> PickSnapshot:
        return PickSnapshot(**{PICK_SETS[dim]: frozenset(keys) for dim, keys in self._picks.items()})
