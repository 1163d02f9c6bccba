"""HTTP clients for the live sources feeding the dashboard."""

from .arr import SOURCE_RADARR, SOURCE_SONARR, ArrClient
from .download_client import (
    DownloadClient,
    QBittorrentClient,
    SabnzbdClient,
    create_download_client,
)
from .tautulli import TautulliClient

__all__ = [
    "SOURCE_RADARR",
    "SOURCE_SONARR",
    "ArrClient",
    "DownloadClient",
    "QBittorrentClient",
    "SabnzbdClient",
    "TautulliClient",
    "create_download_client",
]
