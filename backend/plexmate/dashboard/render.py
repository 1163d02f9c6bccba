"""Dashboard state collection and embed rendering.

Collection pulls each section (streams, queues, downloads, history)
independently; a failing source turns into a placeholder for its own
section only. Rendering is a pure function from the collected state to a
``discord.Embed``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, Protocol, TypeVar

import discord

from plexmate.errors import ConfigurationMissing, DashboardError, UpstreamUnavailable
from plexmate.formatting import format_duration, progress_bar, truncate
from plexmate.models.history import DownloadEvent, WatchEvent, WatchStat
from plexmate.models.upstream import DownloadItem, QueueItem, Session

from .ingest import EventIngestor
from .store import EventStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DASHBOARD_COLOR = discord.Color.from_str("#E5A00D")  # Plex orange
MAX_LINES = 8
RECENT_LIMIT = 5
STATS_DAYS = 7
EMBED_TOTAL_LIMIT = 6000  # Discord rejects larger embeds

_MEDIA_EMOJI = {"episode": "📺", "movie": "🎬", "track": "🎵"}


class ActivitySource(Protocol):
    async def get_active_sessions(self) -> list[Session]: ...


class QueueSource(Protocol):
    source: str
    name: str

    async def get_queue(self) -> list[QueueItem]: ...


class DownloadSource(Protocol):
    name: str

    async def get_active_downloads(self) -> list[DownloadItem]: ...


@dataclass
class Section(Generic[T]):
    """One independently fetched part of the dashboard."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class HistorySnapshot:
    watches: list[WatchEvent] = field(default_factory=list)
    downloads: list[DownloadEvent] = field(default_factory=list)
    by_user: list[WatchStat] = field(default_factory=list)
    by_media_type: list[WatchStat] = field(default_factory=list)


@dataclass
class DashboardState:
    streams: Section[list[Session]]
    queues: dict[str, Section[list[QueueItem]]]
    downloads: Section[list[DownloadItem]]
    history: Section[HistorySnapshot]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def placeholder(error: Exception) -> str:
    if isinstance(error, ConfigurationMissing):
        return "Not configured."
    if isinstance(error, UpstreamUnavailable):
        return f"{error.source} is unavailable."
    return "Unavailable right now."


async def _section(label: str, coro: Awaitable[T]) -> Section[T]:
    try:
        return Section(value=await coro)
    except DashboardError as e:
        logger.warning(f"Dashboard section '{label}' failed: {e}")
        return Section(error=placeholder(e))
    except Exception as e:
        logger.exception(f"Dashboard section '{label}' crashed: {e}")
        return Section(error=placeholder(e))


class DashboardCollector:
    """Gathers a :class:`DashboardState` from the live sources and history.

    Streams and queue items are handed to the ingestor on the way through.
    """

    def __init__(
        self,
        history: EventStore,
        ingestor: EventIngestor,
        *,
        activity: ActivitySource | None = None,
        queues: Sequence[QueueSource] = (),
        downloads: DownloadSource | None = None,
    ):
        self.history = history
        self.ingestor = ingestor
        self.activity = activity
        self.queues = list(queues)
        self.downloads = downloads

    async def _ingest(self, what: str, coro: Awaitable[int]) -> None:
        try:
            await coro
        except Exception as e:
            logger.warning(f"Failed to record {what}: {type(e).__name__}: {e}")

    async def fetch_streams(self) -> list[Session]:
        if self.activity is None:
            raise ConfigurationMissing("Tautulli")
        sessions = await self.activity.get_active_sessions()
        await self._ingest("watch events", self.ingestor.ingest_sessions(sessions))
        return sessions

    async def fetch_queue(self, queue: QueueSource) -> list[QueueItem]:
        items = await queue.get_queue()
        await self._ingest(
            f"{queue.source} download events", self.ingestor.ingest_queue(queue.source, items)
        )
        return items

    async def fetch_downloads(self) -> list[DownloadItem]:
        if self.downloads is None:
            raise ConfigurationMissing("Download client")
        return await self.downloads.get_active_downloads()

    async def fetch_history(self) -> HistorySnapshot:
        watches, downloads, by_user, by_media = await asyncio.gather(
            self.history.recent_watch_events(RECENT_LIMIT),
            self.history.recent_download_events(RECENT_LIMIT),
            self.history.watch_stats_by_user(STATS_DAYS),
            self.history.watch_stats_by_media_type(STATS_DAYS),
        )
        return HistorySnapshot(watches, downloads, by_user, by_media)

    async def collect_streams(self) -> Section[list[Session]]:
        return await _section("streams", self.fetch_streams())

    async def collect_queues(self) -> dict[str, Section[list[QueueItem]]]:
        results = await asyncio.gather(
            *(_section(q.source, self.fetch_queue(q)) for q in self.queues)
        )
        return {q.source: result for q, result in zip(self.queues, results)}

    async def collect_downloads(self) -> Section[list[DownloadItem]]:
        return await _section("downloads", self.fetch_downloads())

    async def collect_history(self) -> Section[HistorySnapshot]:
        return await _section("history", self.fetch_history())

    async def collect(self) -> DashboardState:
        streams, queues, downloads, history = await asyncio.gather(
            self.collect_streams(),
            self.collect_queues(),
            self.collect_downloads(),
            self.collect_history(),
        )
        return DashboardState(streams=streams, queues=queues, downloads=downloads, history=history)


# ==================== Line formatting ====================


def _stream_line(session: Session) -> str:
    emoji = _MEDIA_EMOJI.get(session.media_type, "🎭")
    mode = "🔄" if session.is_transcoding else "⏯️"
    quality = f" • {session.quality}" if session.quality else ""
    return f"{emoji} **{session.user}** — {session.title} `{session.progress}%` {mode}{quality}"


def _queue_line(item: QueueItem) -> str:
    quality = f" ({item.quality})" if item.quality else ""
    left = f" • {item.time_left} left" if item.time_left else ""
    return f"{progress_bar(item.progress)} `{item.progress:.0f}%` {item.title or 'Unknown'}{quality}{left}"


def _download_line(item: DownloadItem) -> str:
    extras = " • ".join(part for part in (item.speed, item.eta and f"ETA {item.eta}") if part)
    suffix = f" • {extras}" if extras else ""
    return f"{progress_bar(item.progress)} `{item.progress:.0f}%` {item.name}{suffix}"


def _watch_line(event: WatchEvent) -> str:
    emoji = _MEDIA_EMOJI.get(event.media_type, "🎭")
    when = f" <t:{int(event.timestamp.timestamp())}:R>" if event.timestamp else ""
    return f"{emoji} **{event.user}** — {event.title}{when}"


def _download_event_line(event: DownloadEvent) -> str:
    size = f" • {event.size}" if event.size else ""
    return f"`{event.source}` {event.title}{size}"


def _stat_line(stat: WatchStat) -> str:
    plays = "play" if stat.count == 1 else "plays"
    return f"**{stat.key}** — {stat.count} {plays} • {format_duration(stat.total_duration)}"


def _lines(items: Sequence[T], fmt, empty: str, limit: int = MAX_LINES) -> str:
    if not items:
        return empty
    lines = [fmt(item) for item in items[:limit]]
    if len(items) > limit:
        lines.append(f"…and {len(items) - limit} more")
    return truncate("\n".join(lines))


def _section_text(section: Section, fmt, empty: str) -> str:
    if not section.ok:
        return section.error or "Unavailable."
    return _lines(section.value or [], fmt, empty)


# ==================== Embeds ====================


def _fit_embed(embed: discord.Embed, limit: int = EMBED_TOTAL_LIMIT) -> discord.Embed:
    """Trim field values, last field first, until the whole embed fits *limit*."""
    for index in reversed(range(len(embed.fields))):
        excess = len(embed) - limit
        if excess <= 0:
            break
        field = embed.fields[index]
        value = truncate(field.value or "", max(len(field.value or "") - excess, 1))
        embed.set_field_at(index, name=field.name, value=value, inline=field.inline)
    return embed


def build_dashboard_embed(state: DashboardState, refresh_seconds: float | None = None) -> discord.Embed:
    """Render the live dashboard. Pure: state in, embed out."""
    streams = state.streams.value or []
    embed = discord.Embed(
        title="📊 Plex Server Dashboard",
        color=DASHBOARD_COLOR,
        timestamp=state.generated_at,
    )

    embed.add_field(
        name=f"▶️ Now Playing ({len(streams)})" if state.streams.ok else "▶️ Now Playing",
        value=_section_text(state.streams, _stream_line, "Nothing is playing."),
        inline=False,
    )

    for source, section in state.queues.items():
        count = f" ({len(section.value or [])})" if section.ok else ""
        embed.add_field(
            name=f"📥 {source.capitalize()} Queue{count}",
            value=_section_text(section, _queue_line, "Queue is empty."),
            inline=False,
        )

    embed.add_field(
        name="⬇️ Downloads",
        value=_section_text(state.downloads, _download_line, "No active downloads."),
        inline=False,
    )

    if state.history.ok and state.history.value is not None:
        history = state.history.value
        recent = _lines(history.watches, _watch_line, "No watch history yet.", limit=RECENT_LIMIT)
        stats = _lines(history.by_media_type, _stat_line, "No plays this week.")
    else:
        recent = stats = state.history.error or "Unavailable."
    embed.add_field(name="🕘 Recently Watched", value=recent, inline=False)
    embed.add_field(name=f"📈 Last {STATS_DAYS} Days", value=stats, inline=False)

    if refresh_seconds:
        embed.set_footer(text=f"Updates every {int(refresh_seconds)}s • Last updated")
    else:
        embed.set_footer(text="Last updated")
    return _fit_embed(embed)


def build_streams_embed(section: Section[list[Session]]) -> discord.Embed:
    sessions = section.value or []
    embed = discord.Embed(
        title=f"▶️ Current Streams ({len(sessions)})" if section.ok else "▶️ Current Streams",
        color=DASHBOARD_COLOR,
        timestamp=datetime.now(timezone.utc),
    )
    if not section.ok:
        embed.description = section.error
        return embed
    if not sessions:
        embed.description = "Nothing is playing right now."
        return embed

    for session in sessions[:25]:
        details = [
            progress_bar(session.progress, width=15) + f" `{session.progress}%`",
            f"Quality: {session.quality or 'Unknown'}",
            f"Player: {session.player or 'Unknown'}",
            "Transcoding" if session.is_transcoding else "Direct Play",
        ]
        if session.state:
            details.append(f"State: {session.state}")
        embed.add_field(
            name=truncate(f"{session.user} — {session.title}", 256),
            value="\n".join(details),
            inline=False,
        )
    return _fit_embed(embed)


def build_downloads_embed(
    queues: dict[str, Section[list[QueueItem]]],
    downloads: Section[list[DownloadItem]],
) -> discord.Embed:
    embed = discord.Embed(
        title="⬇️ Downloads",
        color=DASHBOARD_COLOR,
        timestamp=datetime.now(timezone.utc),
    )
    for source, section in queues.items():
        embed.add_field(
            name=f"📥 {source.capitalize()} Queue",
            value=_section_text(section, _queue_line, "Queue is empty."),
            inline=False,
        )
    embed.add_field(
        name="Download Client",
        value=_section_text(downloads, _download_line, "No active downloads."),
        inline=False,
    )
    return _fit_embed(embed)


def build_history_embed(section: Section[HistorySnapshot]) -> discord.Embed:
    embed = discord.Embed(
        title="🕘 History",
        color=DASHBOARD_COLOR,
        timestamp=datetime.now(timezone.utc),
    )
    if not section.ok or section.value is None:
        embed.description = section.error or "Unavailable."
        return embed

    history = section.value
    embed.add_field(
        name="Recently Watched",
        value=_lines(history.watches, _watch_line, "No watch history yet."),
        inline=False,
    )
    embed.add_field(
        name="Recently Queued",
        value=_lines(history.downloads, _download_event_line, "No download history yet."),
        inline=False,
    )
    embed.add_field(
        name=f"Top Users ({STATS_DAYS} days)",
        value=_lines(history.by_user, _stat_line, "No plays."),
        inline=True,
    )
    embed.add_field(
        name=f"By Type ({STATS_DAYS} days)",
        value=_lines(history.by_media_type, _stat_line, "No plays."),
        inline=True,
    )
    total = sum(stat.total_duration for stat in history.by_media_type)
    embed.set_footer(text=f"Total watch time: {format_duration(total)}")
    return _fit_embed(embed)


__all__ = [
    "DashboardCollector",
    "DashboardState",
    "HistorySnapshot",
    "Section",
    "build_dashboard_embed",
    "build_downloads_embed",
    "build_history_embed",
    "build_streams_embed",
]
