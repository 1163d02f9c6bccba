"""Deduplicating event ingestor.

Every polling pass (the dashboard tick, the show-streams and show-downloads
controls) hands what it observed to the ingestor. The store's unique
constraints make each insert an atomic insert-if-absent, so overlapping
or concurrent passes never store an event twice.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from cachetools import TTLCache  # type: ignore[import-untyped]

from plexmate.formatting import format_bytes
from plexmate.models.history import DownloadEvent, WatchEvent
from plexmate.models.upstream import QueueItem, Session

from .store import EventStore

logger = logging.getLogger(__name__)

EVENT_QUEUED = "queued"


def watch_event_from_session(session: Session) -> WatchEvent:
    return WatchEvent(
        user=session.user,
        title=session.title,
        media_type=session.media_type,
        session_id=session.session_id,
        duration=session.duration,
        player=session.player,
        quality=session.quality,
    )


def download_event_from_queue_item(source: str, item: QueueItem) -> DownloadEvent:
    return DownloadEvent(
        event_type=EVENT_QUEUED,
        source=source,
        media_type=item.media_type,
        title=item.title,
        quality=item.quality,
        size=format_bytes(item.size) if item.size else None,
        status=item.status,
        external_ref=str(item.id) if item.id else None,
    )


class EventIngestor:
    """Insert observed events once per natural key.

    ``_seen`` remembers keys already known to be stored so repeated polls
    skip the database round trip. It is only a shortcut: a miss always goes
    to the store's atomic insert.
    """

    def __init__(self, store: EventStore, *, memo_size: int = 1024, memo_ttl: float = 3600):
        self.store = store
        self._seen: TTLCache = TTLCache(maxsize=memo_size, ttl=memo_ttl)

    async def ingest(self, events: Iterable[WatchEvent | DownloadEvent]) -> int:
        """Store each event unless its natural key is already present.

        Returns the number of rows actually inserted.
        """
        inserted = 0
        for event in events:
            if isinstance(event, WatchEvent):
                if not event.session_id:
                    logger.debug(f"Skipping watch event without session id: {event.title}")
                    continue
                key: tuple = ("watch", event.session_id)
                if key in self._seen:
                    continue
                created = await self.store.insert_watch_event(event)
            else:
                if not event.title:
                    logger.debug(
                        f"Skipping {event.source} queue item without title (id {event.external_ref})"
                    )
                    continue
                key = ("download", event.source, event.title)
                if key in self._seen:
                    continue
                created = await self.store.insert_download_event(event)

            self._seen[key] = True
            if created:
                inserted += 1
                logger.info(f"Recorded {key[0]} event: {key[-1]}")
        return inserted

    async def ingest_sessions(self, sessions: Sequence[Session]) -> int:
        return await self.ingest(watch_event_from_session(s) for s in sessions)

    async def ingest_queue(self, source: str, items: Sequence[QueueItem]) -> int:
        return await self.ingest(download_event_from_queue_item(source, i) for i in items)

    def forget(self) -> None:
        """Drop the in-process memo."""
        self._seen.clear()
