"""Repository for the dashboard_config singleton row."""

from __future__ import annotations

import asyncpg

from plexmate.models.dashboard import DashboardConfig


class DashboardRepository:
    """Pure SQL operations for the dashboard_config table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_config(self) -> DashboardConfig | None:
        """Return the persisted dashboard location, if any."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT message_id, channel_id, owner_id, refresh_interval, last_updated
                FROM dashboard_config
                WHERE id = 1
                """
            )
            if not row:
                return None
            return DashboardConfig(**dict(row))

    async def set_config(self, config: DashboardConfig) -> None:
        """Overwrite the singleton row."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO dashboard_config
                    (id, message_id, channel_id, owner_id, refresh_interval, last_updated)
                VALUES (1, $1, $2, $3, $4, NOW())
                ON CONFLICT (id) DO UPDATE SET
                    message_id       = EXCLUDED.message_id,
                    channel_id       = EXCLUDED.channel_id,
                    owner_id         = EXCLUDED.owner_id,
                    refresh_interval = EXCLUDED.refresh_interval,
                    last_updated     = NOW()
                """,
                config.message_id,
                config.channel_id,
                config.owner_id,
                config.refresh_interval,
            )

    async def touch_config(self, message_id: int) -> bool:
        """Bump last_updated if the row still points at *message_id*."""
        async with self.pool.acquire() as conn:
            result: str = await conn.execute(
                """
                UPDATE dashboard_config
                SET last_updated = NOW()
                WHERE id = 1 AND message_id = $1
                """,
                message_id,
            )
            return result == "UPDATE 1"
