"""Tests for dashboard collection and embed rendering."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from plexmate.dashboard.ingest import EventIngestor
from plexmate.dashboard.render import (
    DashboardCollector,
    DashboardState,
    HistorySnapshot,
    Section,
    build_dashboard_embed,
    build_downloads_embed,
    build_history_embed,
    build_streams_embed,
)
from plexmate.errors import UpstreamUnavailable
from plexmate.formatting import format_duration, format_eta, progress_bar, truncate
from plexmate.models.history import WatchStat
from plexmate.models.upstream import DownloadItem, QueueItem, Session


def make_session(session_id: str = "s1") -> Session:
    return Session(
        session_id=session_id,
        user="alice",
        title="Dune (2021)",
        media_type="movie",
        duration=9300,
        quality="4K",
        progress=40,
        is_transcoding=True,
    )


def make_queue(source: str, items=None, error: Exception | None = None) -> MagicMock:
    queue = MagicMock()
    queue.source = source
    queue.name = source.capitalize()
    if error is not None:
        queue.get_queue = AsyncMock(side_effect=error)
    else:
        queue.get_queue = AsyncMock(return_value=items or [])
    return queue


def make_collector(event_store, **kwargs) -> DashboardCollector:
    return DashboardCollector(event_store, EventIngestor(event_store), **kwargs)


def field_values(embed) -> dict[str, str]:
    return {f.name: f.value for f in embed.fields}


class TestCollector:
    @pytest.mark.asyncio
    async def test_failing_source_only_affects_its_section(self, event_store) -> None:
        activity = MagicMock()
        activity.get_active_sessions = AsyncMock(return_value=[make_session()])
        sonarr = make_queue("sonarr", error=UpstreamUnavailable("Sonarr", "HTTP 500"))
        radarr = make_queue("radarr", [QueueItem(id=1, title="Dune (2021)", size=100)])

        collector = make_collector(event_store, activity=activity, queues=[sonarr, radarr])
        state = await collector.collect()

        assert state.streams.ok
        assert state.queues["sonarr"].error == "Sonarr is unavailable."
        assert state.queues["radarr"].ok
        assert state.downloads.error == "Not configured."
        assert state.history.ok

    @pytest.mark.asyncio
    async def test_missing_activity_source_is_not_configured(self, event_store) -> None:
        state = await make_collector(event_store).collect()

        assert state.streams.error == "Not configured."
        assert state.queues == {}

    @pytest.mark.asyncio
    async def test_collecting_ingests_sessions_and_queue_items(self, event_store) -> None:
        activity = MagicMock()
        activity.get_active_sessions = AsyncMock(return_value=[make_session()])
        radarr = make_queue("radarr", [QueueItem(id=1, title="Dune (2021)", size=100)])

        collector = make_collector(event_store, activity=activity, queues=[radarr])
        await collector.collect()
        await collector.collect()

        assert list(event_store.watch_events) == ["s1"]
        assert list(event_store.download_events) == [("radarr", "Dune (2021)")]

    @pytest.mark.asyncio
    async def test_ingest_failure_keeps_streams_section(self, event_store) -> None:
        activity = MagicMock()
        activity.get_active_sessions = AsyncMock(return_value=[make_session()])
        event_store.insert_watch_event = AsyncMock(side_effect=OSError("down"))

        section = await make_collector(event_store, activity=activity).collect_streams()

        assert section.ok
        assert section.value[0].session_id == "s1"

    @pytest.mark.asyncio
    async def test_history_failure_is_a_placeholder(self, event_store) -> None:
        event_store.fail_reads = True

        section = await make_collector(event_store).collect_history()

        assert section.error == "Unavailable right now."


class TestEmbeds:
    def make_state(self, **overrides) -> DashboardState:
        state = {
            "streams": Section(value=[make_session()]),
            "queues": {"sonarr": Section(value=[]), "radarr": Section(error="Radarr is unavailable.")},
            "downloads": Section(
                value=[DownloadItem(name="ubuntu.iso", progress=50, speed="1 MB/s", eta="5m")]
            ),
            "history": Section(
                value=HistorySnapshot(by_media_type=[WatchStat("movie", 3, 7200)])
            ),
        }
        state.update(overrides)
        return DashboardState(**state)

    def test_dashboard_embed_has_every_section(self) -> None:
        embed = build_dashboard_embed(self.make_state(), refresh_seconds=60)
        values = field_values(embed)

        assert embed.title == "📊 Plex Server Dashboard"
        assert "alice" in values["▶️ Now Playing (1)"]
        assert values["📥 Sonarr Queue (0)"] == "Queue is empty."
        assert values["📥 Radarr Queue"] == "Radarr is unavailable."
        assert "ubuntu.iso" in values["⬇️ Downloads"]
        assert "3 plays" in values["📈 Last 7 Days"]
        assert embed.footer.text.startswith("Updates every 60s")

    def test_failed_history_shows_placeholder_in_both_fields(self) -> None:
        state = self.make_state(history=Section(error="Unavailable right now."))
        values = field_values(build_dashboard_embed(state))

        assert values["🕘 Recently Watched"] == "Unavailable right now."
        assert values["📈 Last 7 Days"] == "Unavailable right now."

    def test_long_lists_are_capped(self) -> None:
        sessions = [make_session(str(i)) for i in range(20)]
        values = field_values(build_dashboard_embed(self.make_state(streams=Section(value=sessions))))

        assert values["▶️ Now Playing (20)"].endswith("…and 12 more")
        assert all(len(v) <= 1024 for v in values.values())

    def test_oversized_dashboard_fits_total_embed_limit(self) -> None:
        long_items = [QueueItem(id=i, title="x" * 300, progress=10.0) for i in range(8)]
        queues = {f"source{i}": Section(value=long_items) for i in range(7)}

        embed = build_dashboard_embed(self.make_state(queues=queues), refresh_seconds=60)
        values = field_values(embed)

        assert len(embed) <= 6000
        assert "alice" in values["▶️ Now Playing (1)"]
        assert len(values["📥 Source0 Queue (8)"]) == 1024

    def test_untitled_queue_item_renders_as_unknown(self) -> None:
        embed = build_downloads_embed(
            {"sonarr": Section(value=[QueueItem(id=1, title="")])},
            Section(value=[]),
        )

        assert "Unknown" in field_values(embed)["📥 Sonarr Queue"]

    def test_streams_embed(self) -> None:
        embed = build_streams_embed(Section(value=[make_session()]))

        assert embed.title == "▶️ Current Streams (1)"
        assert "Transcoding" in embed.fields[0].value

    def test_streams_embed_placeholder(self) -> None:
        embed = build_streams_embed(Section(error="Tautulli is unavailable."))

        assert embed.description == "Tautulli is unavailable."
        assert embed.fields == []

    def test_downloads_embed(self) -> None:
        embed = build_downloads_embed(
            {"radarr": Section(value=[QueueItem(id=1, title="Dune", progress=25.0)])},
            Section(error="Not configured."),
        )
        values = field_values(embed)

        assert "Dune" in values["📥 Radarr Queue"]
        assert values["Download Client"] == "Not configured."

    def test_history_embed_totals_watch_time(self) -> None:
        snapshot = HistorySnapshot(
            by_user=[WatchStat("alice", 2, 3600)],
            by_media_type=[WatchStat("movie", 1, 3600), WatchStat("episode", 1, 1800)],
        )
        embed = build_history_embed(Section(value=snapshot))

        assert embed.footer.text == "Total watch time: 1h 30m"


class TestFormatting:
    def test_format_duration(self) -> None:
        assert format_duration(None) == "0m"
        assert format_duration(720) == "12m"
        assert format_duration(3900) == "1h 5m"

    def test_format_eta_unknown_sentinel(self) -> None:
        assert format_eta(8_640_000) == "Unknown"
        assert format_eta(30) == "30s"
        assert format_eta(3900) == "1h 5m"

    def test_progress_bar_bounds(self) -> None:
        assert progress_bar(0) == "▱" * 10
        assert progress_bar(100) == "▰" * 10
        assert progress_bar(150) == "▰" * 10

    def test_truncate(self) -> None:
        assert truncate("abc", 5) == "abc"
        assert truncate("abcdef", 5) == "abcd…"
