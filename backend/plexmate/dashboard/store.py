"""Durable store interfaces consumed by the dashboard core.

The asyncpg repositories implement these; tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol

from plexmate.models.dashboard import DashboardConfig
from plexmate.models.history import DownloadEvent, WatchEvent, WatchStat


class ConfigStore(Protocol):
    async def get_config(self) -> DashboardConfig | None: ...

    async def set_config(self, config: DashboardConfig) -> None: ...

    async def touch_config(self, message_id: int) -> bool: ...


class EventStore(Protocol):
    """Append-only event tables. ``insert_*`` must be atomic insert-if-absent."""

    async def watch_event_exists(self, session_id: str) -> bool: ...

    async def insert_watch_event(self, event: WatchEvent) -> bool: ...

    async def download_event_exists(self, source: str, title: str) -> bool: ...

    async def insert_download_event(self, event: DownloadEvent) -> bool: ...

    async def recent_watch_events(self, limit: int = 10) -> list[WatchEvent]: ...

    async def recent_download_events(self, limit: int = 10) -> list[DownloadEvent]: ...

    async def watch_stats_by_user(self, days: int = 7) -> list[WatchStat]: ...

    async def watch_stats_by_media_type(self, days: int = 7) -> list[WatchStat]: ...
