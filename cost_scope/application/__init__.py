"""Application layer package."""

from .advisor_service import AdvisorSummary, summarize_recommendations
from .engine import Engine, RefreshResult, ViewSpec, create_engine
from .refresh import RefreshCoordinator
from .resolver import active_rows

__all__ = [
    "AdvisorSummary",
    "summarize_recommendations",
    "Engine",
    "RefreshResult",
    "ViewSpec",
    "create_engine",
    "RefreshCoordinator",
    "active_rows",
]
