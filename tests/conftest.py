"""Pytest fixtures for PlexMate tests.

In-memory stand-ins for the Postgres repositories and the Discord surface,
so the dashboard core can be exercised without a database or a gateway.
"""

from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from plexmate.dashboard.surface import MessageRef
from plexmate.errors import MessageNotFound
from plexmate.models.dashboard import DashboardConfig
from plexmate.models.history import DownloadEvent, WatchEvent, WatchStat


class FakeConfigStore:
    def __init__(self, config: DashboardConfig | None = None):
        self.config = config
        self.writes: list[DashboardConfig] = []
        self.touches: list[int] = []

    async def get_config(self) -> DashboardConfig | None:
        return replace(self.config) if self.config else None

    async def set_config(self, config: DashboardConfig) -> None:
        self.config = replace(config, last_updated=datetime.now(timezone.utc))
        self.writes.append(config)

    async def touch_config(self, message_id: int) -> bool:
        self.touches.append(message_id)
        if self.config is None or self.config.message_id != message_id:
            return False
        self.config.last_updated = datetime.now(timezone.utc)
        return True


class FakeEventStore:
    """Insert-if-absent with no await between check and write, like ON CONFLICT."""

    def __init__(self):
        self.watch_events: dict[str, WatchEvent] = {}
        self.download_events: dict[tuple[str, str], DownloadEvent] = {}
        self.insert_calls = 0
        self.fail_reads = False

    async def watch_event_exists(self, session_id: str) -> bool:
        return session_id in self.watch_events

    async def insert_watch_event(self, event: WatchEvent) -> bool:
        self.insert_calls += 1
        if event.session_id in self.watch_events:
            return False
        self.watch_events[event.session_id] = replace(
            event, timestamp=datetime.now(timezone.utc), id=len(self.watch_events) + 1
        )
        return True

    async def download_event_exists(self, source: str, title: str) -> bool:
        return (source, title) in self.download_events

    async def insert_download_event(self, event: DownloadEvent) -> bool:
        self.insert_calls += 1
        key = (event.source, event.title)
        if key in self.download_events:
            return False
        self.download_events[key] = replace(
            event, timestamp=datetime.now(timezone.utc), id=len(self.download_events) + 1
        )
        return True

    def _check(self) -> None:
        if self.fail_reads:
            raise OSError("database unreachable")

    async def recent_watch_events(self, limit: int = 10) -> list[WatchEvent]:
        self._check()
        return list(reversed(self.watch_events.values()))[:limit]

    async def recent_download_events(self, limit: int = 10) -> list[DownloadEvent]:
        self._check()
        return list(reversed(self.download_events.values()))[:limit]

    async def watch_stats_by_user(self, days: int = 7) -> list[WatchStat]:
        self._check()
        counts = Counter(e.user for e in self.watch_events.values())
        return [WatchStat(k, v) for k, v in counts.most_common()]

    async def watch_stats_by_media_type(self, days: int = 7) -> list[WatchStat]:
        self._check()
        counts = Counter(e.media_type for e in self.watch_events.values())
        return [WatchStat(k, v) for k, v in counts.most_common()]


class FakeSurface:
    """Tracks messages per channel. Flip the ``fail_*`` flags to inject errors."""

    def __init__(self):
        self._ids = itertools.count(1000)
        self.messages: dict[int, set[int]] = {}
        self.sent: list[MessageRef] = []
        self.edited: list[MessageRef] = []
        self.delete_attempts: list[MessageRef] = []
        self.fail_send = False
        self.fail_edit = False
        self.fail_delete = False

    def existing(self, channel_id: int, message_id: int) -> None:
        self.messages.setdefault(channel_id, set()).add(message_id)

    def vanish(self, ref: MessageRef | int, channel_id: int | None = None) -> None:
        if isinstance(ref, MessageRef):
            channel_id, message_id = ref.channel_id, ref.message_id
        else:
            message_id = ref
        self.messages.get(channel_id, set()).discard(message_id)

    def exists(self, channel_id: int, message_id: int) -> bool:
        return message_id in self.messages.get(channel_id, set())

    async def send(self, channel_id: int, document) -> MessageRef:
        if self.fail_send:
            raise RuntimeError("send failed")
        ref = MessageRef(channel_id, next(self._ids))
        self.existing(channel_id, ref.message_id)
        self.sent.append(ref)
        return ref

    async def edit(self, ref: MessageRef, document) -> None:
        if self.fail_edit:
            raise RuntimeError("edit failed")
        if not self.exists(ref.channel_id, ref.message_id):
            raise MessageNotFound(ref.channel_id, ref.message_id)
        self.edited.append(ref)

    async def delete(self, ref: MessageRef) -> None:
        self.delete_attempts.append(ref)
        if self.fail_delete:
            raise RuntimeError("delete failed")
        self.vanish(ref)

    async def fetch(self, channel_id: int, message_id: int) -> MessageRef | None:
        if self.exists(channel_id, message_id):
            return MessageRef(channel_id, message_id)
        return None


@pytest.fixture
def config_store() -> FakeConfigStore:
    return FakeConfigStore()


@pytest.fixture
def event_store() -> FakeEventStore:
    return FakeEventStore()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()
