"""Repository layer over the PlexMate PostgreSQL schema."""

from .dashboard import DashboardRepository
from .history import HistoryRepository

__all__ = [
    "DashboardRepository",
    "HistoryRepository",
]
