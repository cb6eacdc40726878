from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

SUB_A = "sub-a"
SUB_B = "sub-b"
SUB_C = "sub-c"


def fact(
    day: date,
    subscription_id: str,
    category: str,
    subcategory: str,
    meter: str,
    resource: str,
    cost_local: float,
    cost_usd: float | None = None,
    currency: str = "EUR",
) -> dict[str, Any]:
    return {
        "day": day,
        "subscriptionId": subscription_id,
        "subscriptionName": subscription_id.upper(),
        "category": category,
        "subcategory": subcategory,
        "meter": meter,
        "resource": resource,
        "costLocal": cost_local,
        "costUSD": cost_local if cost_usd is None else cost_usd,
        "currency": currency,
    }


def daily_series(subscription_id: str, resource: str, start: date, costs: list[float]) -> list[dict[str, Any]]:
    """One Compute/VM fact per day for ``resource``, starting at ``start``."""
    return [
        fact(date.fromordinal(start.toordinal() + offset), subscription_id, "Compute", "VM", "D2s v3", resource, cost)
        for offset, cost in enumerate(costs)
    ]


class ManualScheduler:
    """Collects scheduled ticks so tests decide when the "next tick" happens."""

    def __init__(self) -> None:
        self.pending: list[Callable[[], None]] = []

    def __call__(self, callback: Callable[[], None]) -> None:
        self.pending.append(callback)

    def tick(self) -> int:
        callbacks, self.pending = self.pending, []
        for callback in callbacks:
            callback()
        return len(callbacks)
