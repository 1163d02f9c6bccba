"""Normalised records returned by the live sources. Never persisted."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Session:
    """A live playback session reported by Tautulli."""

    session_id: str
    user: str
    title: str
    media_type: str
    duration: int | None = None
    player: str | None = None
    quality: str | None = None
    progress: int = 0
    state: str | None = None
    is_transcoding: bool = False


@dataclass
class QueueItem:
    """An entry in a Sonarr or Radarr download queue."""

    id: int
    title: str
    quality: str | None = None
    size: int | None = None
    progress: float = 0.0
    status: str | None = None
    time_left: str | None = None
    media_type: str = "unknown"


@dataclass
class DownloadItem:
    """An active transfer in the download client."""

    name: str
    progress: float = 0.0
    speed: str | None = None
    eta: str | None = None
    state: str | None = None
