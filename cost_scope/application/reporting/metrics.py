"""Shared numeric helpers and aggregation defaults."""

from __future__ import annotations

import os
from decimal import Decimal
from typing import Any

from cost_scope.domain.models import MEASURES


def _default_top_n() -> int:
    raw = os.getenv("COST_SCOPE_DEFAULT_TOP_N", "15")
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid COST_SCOPE_DEFAULT_TOP_N: {raw}") from exc
    if value <= 0:
        raise ValueError(f"COST_SCOPE_DEFAULT_TOP_N must be positive, got {value}")
    return value


def _default_measure() -> str:
    raw = os.getenv("COST_SCOPE_DEFAULT_MEASURE", "cost_local").strip().lower()
    if raw not in MEASURES:
        raise ValueError(f"COST_SCOPE_DEFAULT_MEASURE must be one of {list(MEASURES)}, got {raw!r}")
    return raw


DEFAULT_TOP_N = _default_top_n()
DEFAULT_MEASURE = _default_measure()
ZERO = Decimal(0)


def safe_pct_change(curr: Decimal | None, prev: Decimal | None) -> Decimal | None:
    if curr is None or prev is None or prev <= 0:
        return None
    return (curr - prev) / prev


def check_measure(measure: str) -> str:
    if measure not in MEASURES:
        raise ValueError(f"measure must be one of {list(MEASURES)}, got {measure!r}")
    return measure


def check_limit(n: Any) -> int:
    if isinstance(n, bool) or not isinstance(n, int):
        raise ValueError(f"n must be an integer, got {n!r}")
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    return n
