"""Tautulli client: live Plex playback sessions."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from plexmate.errors import UpstreamUnavailable
from plexmate.models.upstream import Session

from .base import HttpService

logger = logging.getLogger(__name__)


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _format_title(raw: dict[str, Any]) -> str:
    if raw.get("media_type") == "episode":
        show = raw.get("grandparent_title") or raw.get("title") or "Unknown"
        season = raw.get("parent_media_index")
        episode = raw.get("media_index")
        if season and episode:
            return f"{show} - S{season}E{episode}"
        return show
    title = raw.get("title") or raw.get("full_title") or "Unknown"
    if raw.get("year"):
        title += f" ({raw['year']})"
    return title


def _format_quality(raw: dict[str, Any]) -> str | None:
    if raw.get("video_full_resolution"):
        return str(raw["video_full_resolution"])
    if raw.get("video_resolution"):
        return f"{raw['video_resolution']}p"
    return raw.get("quality_profile")


def parse_session(raw: dict[str, Any]) -> Session:
    """Normalise one entry of Tautulli's ``get_activity`` sessions list."""
    duration_ms = _to_int(raw.get("duration"))
    offset_ms = _to_int(raw.get("view_offset"))
    if raw.get("progress_percent") not in (None, ""):
        progress = _to_int(raw.get("progress_percent"))
    elif duration_ms:
        progress = round(offset_ms / duration_ms * 100)
    else:
        progress = 0

    return Session(
        session_id=str(raw.get("session_id") or raw.get("session_key") or ""),
        user=raw.get("friendly_name") or raw.get("user") or "Unknown",
        title=_format_title(raw),
        media_type=raw.get("media_type") or "unknown",
        duration=duration_ms // 1000 if duration_ms else None,
        player=raw.get("player") or raw.get("platform"),
        quality=_format_quality(raw),
        progress=progress,
        state=raw.get("state"),
        is_transcoding=(raw.get("transcode_decision") or "direct play") != "direct play",
    )


class TautulliClient(HttpService):
    """Client for the Tautulli v2 API."""

    name = "Tautulli"

    def __init__(self, base_url: str, api_key: str, *, http: httpx.AsyncClient | None = None):
        super().__init__(base_url, http=http)
        self.api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def _command(self, cmd: str, **params: Any) -> Any:
        self._require_config(self.api_key)
        payload = await self._get_json(
            "/api/v2", params={"apikey": self.api_key, "cmd": cmd, **params}
        )
        response = payload.get("response", {}) if isinstance(payload, dict) else {}
        if response.get("result") != "success":
            raise UpstreamUnavailable(self.name, response.get("message") or f"{cmd} failed")
        return response.get("data")

    async def get_active_sessions(self) -> list[Session]:
        data = await self._command("get_activity")
        sessions = (data or {}).get("sessions") or []
        return [parse_session(raw) for raw in sessions]
