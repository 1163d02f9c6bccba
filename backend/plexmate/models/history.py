"""Data models for the watch_events and download_events tables."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class WatchEvent:
    """One playback session, recorded the first time it is observed."""

    user: str
    title: str
    media_type: str
    session_id: str
    duration: int | None = None
    player: str | None = None
    quality: str | None = None
    timestamp: datetime | None = None
    id: int | None = None

    @property
    def natural_key(self) -> str:
        return self.session_id


@dataclass
class DownloadEvent:
    """One queued download, keyed by (source, title)."""

    event_type: str
    source: str
    media_type: str
    title: str
    quality: str | None = None
    size: str | None = None
    status: str | None = None
    external_ref: str | None = None
    timestamp: datetime | None = None
    id: int | None = None

    @property
    def natural_key(self) -> tuple[str, str]:
        return (self.source, self.title)


@dataclass
class WatchStat:
    """Aggregated watch count and duration for one user or media type."""

    key: str
    count: int
    total_duration: int = 0
