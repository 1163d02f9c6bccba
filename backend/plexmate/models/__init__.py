"""Data models for the dashboard and history tables and upstream records."""

from .dashboard import DashboardConfig
from .history import DownloadEvent, WatchEvent, WatchStat
from .upstream import DownloadItem, QueueItem, Session

__all__ = [
    "DashboardConfig",
    "DownloadEvent",
    "DownloadItem",
    "QueueItem",
    "Session",
    "WatchEvent",
    "WatchStat",
]
