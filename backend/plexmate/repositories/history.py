"""Repository for the watch_events and download_events tables."""

from __future__ import annotations

import logging

import asyncpg

from plexmate.cache import _MISSING, AsyncTTLCache
from plexmate.models.history import DownloadEvent, WatchEvent, WatchStat

logger = logging.getLogger(__name__)

# --- In-process caches ---
_stats_cache = AsyncTTLCache(maxsize=16, ttl=300)


class HistoryRepository:
    """Append-only event history with atomic insert-if-absent.

    Both tables carry a unique constraint on their natural key, so an
    insert is a single ``ON CONFLICT DO NOTHING`` statement and concurrent
    ingestion of the same event can never produce a second row.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    # ==================== Watch Events ====================

    async def watch_event_exists(self, session_id: str) -> bool:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT 1 FROM watch_events WHERE session_id = $1",
                session_id,
            )
            return row is not None

    async def insert_watch_event(self, event: WatchEvent) -> bool:
        """Insert unless the session is already recorded. Returns True if inserted."""
        async with self.pool.acquire() as conn:
            result: str = await conn.execute(
                """
                INSERT INTO watch_events
                    ("user", title, media_type, duration, player, quality, session_id)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                ON CONFLICT (session_id) DO NOTHING
                """,
                event.user,
                event.title,
                event.media_type,
                event.duration,
                event.player,
                event.quality,
                event.session_id,
            )
        inserted = result == "INSERT 0 1"
        if inserted:
            _stats_cache.clear()
        return inserted

    async def recent_watch_events(self, limit: int = 10) -> list[WatchEvent]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT id, "user", title, media_type, duration, player, quality,
                       session_id, timestamp
                FROM watch_events
                ORDER BY timestamp DESC, id DESC
                LIMIT $1
                """,
                limit,
            )
            return [WatchEvent(**dict(row)) for row in rows]

    # ==================== Download Events ====================

    async def download_event_exists(self, source: str, title: str) -> bool:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT 1 FROM download_events WHERE source = $1 AND title = $2",
                source,
                title,
            )
            return row is not None

    async def insert_download_event(self, event: DownloadEvent) -> bool:
        """Insert unless (source, title) is already recorded. Returns True if inserted."""
        async with self.pool.acquire() as conn:
            result: str = await conn.execute(
                """
                INSERT INTO download_events
                    (event_type, source, media_type, title, quality, size, status, external_ref)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                ON CONFLICT (source, title) DO NOTHING
                """,
                event.event_type,
                event.source,
                event.media_type,
                event.title,
                event.quality,
                event.size,
                event.status,
                event.external_ref,
            )
            return result == "INSERT 0 1"

    async def recent_download_events(self, limit: int = 10) -> list[DownloadEvent]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT id, event_type, source, media_type, title, quality, size,
                       status, external_ref, timestamp
                FROM download_events
                ORDER BY timestamp DESC, id DESC
                LIMIT $1
                """,
                limit,
            )
            return [DownloadEvent(**dict(row)) for row in rows]

    # ==================== Statistics ====================

    async def watch_stats_by_user(self, days: int = 7) -> list[WatchStat]:
        return await self._watch_stats("user", days)

    async def watch_stats_by_media_type(self, days: int = 7) -> list[WatchStat]:
        return await self._watch_stats("media_type", days)

    async def _watch_stats(self, column: str, days: int) -> list[WatchStat]:
        """Aggregate watch_events over the last *days* days.

        Falls back to the last-known-good result if the database is down.
        """
        cache_key = f"stats:{column}:{days}"
        cached = _stats_cache.get(cache_key)
        if cached is not _MISSING:
            return cached

        group_by = '"user"' if column == "user" else "media_type"
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {group_by} AS key,
                           COUNT(*) AS count,
                           COALESCE(SUM(duration), 0) AS total_duration
                    FROM watch_events
                    WHERE timestamp >= NOW() - make_interval(days => $1)
                    GROUP BY {group_by}
                    ORDER BY count DESC, key
                    """,  # noqa: S608
                    days,
                )
        except (asyncpg.PostgresError, OSError) as e:
            stale = _stats_cache.get_stale(cache_key)
            if stale is _MISSING:
                raise
            logger.warning(f"Returning stale watch stats for {cache_key} ({type(e).__name__})")
            return stale

        result = [
            WatchStat(key=row["key"], count=row["count"], total_duration=row["total_duration"])
            for row in rows
        ]
        _stats_cache.set(cache_key, result)
        return result
