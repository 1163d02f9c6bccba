"""Data model for the dashboard_config table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

DEFAULT_REFRESH_INTERVAL_MS = 60_000


@dataclass
class DashboardConfig:
    """Where the single dashboard lives. Singleton row, overwritten on relocate."""

    message_id: int
    channel_id: int
    owner_id: int
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL_MS
    last_updated: datetime | None = None
