"""Download-client adapters (qBittorrent, SABnzbd) and their factory."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from plexmate.errors import UpstreamUnavailable
from plexmate.formatting import format_eta, format_speed
from plexmate.models.upstream import DownloadItem

from .base import HttpService

logger = logging.getLogger(__name__)


class DownloadClient(Protocol):
    name: str

    async def get_active_downloads(self) -> list[DownloadItem]: ...

    async def close(self) -> None: ...


class QBittorrentClient(HttpService):
    """qBittorrent Web API v2 client. Authenticates with a session cookie."""

    name = "qBittorrent"

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        http: httpx.AsyncClient | None = None,
    ):
        super().__init__(base_url, http=http)
        self.username = username
        self.password = password
        self._logged_in = False

    async def login(self) -> None:
        self._require_config()
        response = await self._request(
            "POST",
            "/api/v2/auth/login",
            data={"username": self.username, "password": self.password},
            headers={"Referer": self.base_url},
        )
        if response.text.strip() != "Ok.":
            self._logged_in = False
            raise UpstreamUnavailable(self.name, "login rejected")
        self._logged_in = True
        logger.debug("qBittorrent login succeeded")

    async def _torrents(self, filter_: str) -> list[dict[str, Any]]:
        if not self._logged_in:
            await self.login()
        try:
            return await self._get_json("/api/v2/torrents/info", params={"filter": filter_})
        except UpstreamUnavailable as e:
            # Session cookie expired: log in again once
            if "HTTP 403" not in e.reason:
                raise
            await self.login()
            return await self._get_json("/api/v2/torrents/info", params={"filter": filter_})

    async def get_active_downloads(self) -> list[DownloadItem]:
        torrents = await self._torrents("downloading")
        return [
            DownloadItem(
                name=torrent.get("name") or "Unknown",
                progress=round(float(torrent.get("progress") or 0) * 100, 1),
                speed=format_speed(torrent.get("dlspeed")),
                eta=format_eta(torrent.get("eta")),
                state=torrent.get("state"),
            )
            for torrent in torrents
        ]


class SabnzbdClient(HttpService):
    """SABnzbd JSON API client."""

    name = "SABnzbd"

    def __init__(self, base_url: str, api_key: str, *, http: httpx.AsyncClient | None = None):
        super().__init__(base_url, http=http)
        self.api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def get_active_downloads(self) -> list[DownloadItem]:
        self._require_config(self.api_key)
        payload = await self._get_json(
            "/api", params={"mode": "queue", "output": "json", "apikey": self.api_key}
        )
        if not isinstance(payload, dict) or "queue" not in payload:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise UpstreamUnavailable(self.name, error or "unexpected response")

        queue = payload["queue"]
        speed = queue.get("speed")
        items = []
        for slot in queue.get("slots") or []:
            status = slot.get("status")
            items.append(
                DownloadItem(
                    name=slot.get("filename") or "Unknown",
                    progress=float(slot.get("percentage") or 0),
                    speed=f"{speed}B/s" if speed and status == "Downloading" else None,
                    eta=slot.get("timeleft"),
                    state=status,
                )
            )
        return items


def create_download_client(
    kind: str,
    *,
    qbittorrent_url: str = "",
    qbittorrent_username: str = "",
    qbittorrent_password: str = "",
    sabnzbd_url: str = "",
    sabnzbd_api_key: str = "",
) -> DownloadClient | None:
    """Build the configured download client, or None if none is configured."""
    kind = (kind or "").lower()
    if kind == "qbittorrent":
        return QBittorrentClient(qbittorrent_url, qbittorrent_username, qbittorrent_password)
    if kind == "sabnzbd":
        return SabnzbdClient(sabnzbd_url, sabnzbd_api_key)
    if kind:
        logger.warning(f"Unknown download client type: {kind}, downloads section disabled")
    return None
