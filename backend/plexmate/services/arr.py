"""Sonarr / Radarr client: the two download job queues."""

from __future__ import annotations

from typing import Any

import httpx

from plexmate.models.upstream import QueueItem

from .base import HttpService

SOURCE_SONARR = "sonarr"
SOURCE_RADARR = "radarr"

_MEDIA_TYPES = {SOURCE_SONARR: "episode", SOURCE_RADARR: "movie"}


def parse_queue_record(record: dict[str, Any], media_type: str) -> QueueItem:
    """Normalise one record of the ``/api/v3/queue`` response."""
    size = record.get("size") or 0
    size_left = record.get("sizeleft") or 0
    progress = round((size - size_left) / size * 100, 1) if size else 0.0
    quality = ((record.get("quality") or {}).get("quality") or {}).get("name")
    return QueueItem(
        id=int(record.get("id") or 0),
        title=record.get("title") or "",
        quality=quality,
        size=int(size) if size else None,
        progress=progress,
        status=record.get("status"),
        time_left=record.get("timeleft"),
        media_type=media_type,
    )


class ArrClient(HttpService):
    """Client for a Sonarr or Radarr v3 API. ``source`` names the queue."""

    def __init__(
        self,
        source: str,
        base_url: str,
        api_key: str,
        *,
        http: httpx.AsyncClient | None = None,
    ):
        super().__init__(base_url, http=http)
        self.source = source
        self.name = source.capitalize()
        self.api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES.get(self.source, "unknown")

    async def get_queue(self, page_size: int = 50) -> list[QueueItem]:
        self._require_config(self.api_key)
        payload = await self._get_json(
            "/api/v3/queue",
            params={"page": 1, "pageSize": page_size},
            headers={"X-Api-Key": self.api_key},
        )
        records = payload.get("records", []) if isinstance(payload, dict) else payload
        return [parse_queue_record(record, self.media_type) for record in records or []]
