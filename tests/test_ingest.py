"""Tests for the deduplicating event ingestor."""

from __future__ import annotations

import asyncio

import pytest

from plexmate.dashboard.ingest import (
    EventIngestor,
    download_event_from_queue_item,
    watch_event_from_session,
)
from plexmate.models.upstream import QueueItem, Session


def make_session(session_id: str = "abc", progress: int = 10, **kwargs) -> Session:
    defaults = {
        "user": "alice",
        "title": "The Office - S2E3",
        "media_type": "episode",
        "duration": 1320,
        "player": "Roku",
        "quality": "1080p",
    }
    defaults.update(kwargs)
    return Session(session_id=session_id, progress=progress, **defaults)


def make_queue_item(title: str = "Dune (2021)", size: int = 4 * 1024**3, **kwargs) -> QueueItem:
    return QueueItem(id=kwargs.pop("id", 7), title=title, size=size, media_type="movie", **kwargs)


class TestConversion:
    def test_watch_event_copies_session_fields(self) -> None:
        event = watch_event_from_session(make_session())

        assert event.session_id == "abc"
        assert event.user == "alice"
        assert event.quality == "1080p"
        assert event.natural_key == "abc"

    def test_download_event_formats_size_and_ref(self) -> None:
        event = download_event_from_queue_item("radarr", make_queue_item())

        assert event.event_type == "queued"
        assert event.source == "radarr"
        assert event.size == "4 GB"
        assert event.external_ref == "7"
        assert event.natural_key == ("radarr", "Dune (2021)")


class TestIngest:
    @pytest.mark.asyncio
    async def test_same_session_observed_many_times_is_stored_once(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        for _ in range(5):
            await ingestor.ingest_sessions([make_session()])

        assert len(event_store.watch_events) == 1

    @pytest.mark.asyncio
    async def test_first_observation_wins(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        await ingestor.ingest_sessions([make_session(progress=10, quality="720p")])
        await ingestor.ingest_sessions([make_session(progress=55, quality="1080p")])

        assert event_store.watch_events["abc"].quality == "720p"

    @pytest.mark.asyncio
    async def test_concurrent_passes_store_once(self, event_store) -> None:
        ingestors = [EventIngestor(event_store) for _ in range(4)]

        results = await asyncio.gather(
            *(i.ingest_sessions([make_session()]) for i in ingestors)
        )

        assert sum(results) == 1
        assert len(event_store.watch_events) == 1

    @pytest.mark.asyncio
    async def test_memo_skips_store_round_trip(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        await ingestor.ingest_sessions([make_session()])
        await ingestor.ingest_sessions([make_session()])

        assert event_store.insert_calls == 1

    @pytest.mark.asyncio
    async def test_forget_falls_back_to_store_constraint(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        assert await ingestor.ingest_sessions([make_session()]) == 1
        ingestor.forget()
        assert await ingestor.ingest_sessions([make_session()]) == 0

        assert event_store.insert_calls == 2
        assert len(event_store.watch_events) == 1

    @pytest.mark.asyncio
    async def test_distinct_sessions_are_all_stored(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        inserted = await ingestor.ingest_sessions(
            [make_session("a"), make_session("b"), make_session("c")]
        )

        assert inserted == 3

    @pytest.mark.asyncio
    async def test_session_without_id_is_skipped(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        assert await ingestor.ingest_sessions([make_session("")]) == 0
        assert event_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_queue_item_with_changed_size_is_stored_once(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        await ingestor.ingest_queue("radarr", [make_queue_item(size=1024**3)])
        await ingestor.ingest_queue("radarr", [make_queue_item(size=2 * 1024**3)])

        stored = event_store.download_events[("radarr", "Dune (2021)")]
        assert stored.size == "1 GB"
        assert len(event_store.download_events) == 1

    @pytest.mark.asyncio
    async def test_same_title_from_two_sources_is_two_events(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        await ingestor.ingest_queue("sonarr", [make_queue_item(title="Show")])
        await ingestor.ingest_queue("radarr", [make_queue_item(title="Show")])

        assert len(event_store.download_events) == 2

    @pytest.mark.asyncio
    async def test_store_failure_propagates_and_is_not_memoized(self, event_store) -> None:
        ingestor = EventIngestor(event_store)
        original = event_store.insert_watch_event

        async def broken(event):
            raise OSError("database unreachable")

        event_store.insert_watch_event = broken
        with pytest.raises(OSError):
            await ingestor.ingest_sessions([make_session()])

        event_store.insert_watch_event = original
        assert await ingestor.ingest_sessions([make_session()]) == 1

    @pytest.mark.asyncio
    async def test_untitled_queue_items_are_skipped(self, event_store) -> None:
        ingestor = EventIngestor(event_store)

        inserted = await ingestor.ingest_queue(
            "sonarr", [make_queue_item(title="", id=1), make_queue_item(title="", id=2)]
        )

        assert inserted == 0
        assert event_store.insert_calls == 0
        assert event_store.download_events == {}
