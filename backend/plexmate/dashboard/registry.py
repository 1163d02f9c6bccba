"""In-memory registry of active dashboards."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from .periodic import PeriodicTask


@dataclass
class DashboardHandle:
    """A live dashboard in one channel. Never persisted."""

    message_id: int
    task: PeriodicTask


class DashboardRegistry:
    """Channel → handle map guarded by one lock.

    Only bookkeeping happens under the lock; callers render and talk to
    Discord outside of it. At most one handle exists per channel.
    """

    def __init__(self) -> None:
        self._handles: dict[int, DashboardHandle] = {}
        self._lock = asyncio.Lock()

    async def get(self, channel_id: int) -> DashboardHandle | None:
        async with self._lock:
            return self._handles.get(channel_id)

    async def has(self, channel_id: int) -> bool:
        async with self._lock:
            return channel_id in self._handles

    async def try_register(self, channel_id: int, handle: DashboardHandle) -> bool:
        """Insert *handle* unless the channel already has one."""
        async with self._lock:
            if channel_id in self._handles:
                return False
            self._handles[channel_id] = handle
            return True

    async def remove(
        self,
        channel_id: int,
        expected: DashboardHandle | None = None,
        message_id: int | None = None,
    ) -> DashboardHandle | None:
        """Remove and return the channel's handle.

        With *expected*, only remove if the registered handle is that object,
        so a late failure can't evict a dashboard created after it. With
        *message_id*, only remove if the handle still points at that message,
        so a failure on a relocated-away message leaves the dashboard running.
        """
        async with self._lock:
            current = self._handles.get(channel_id)
            if current is None or (expected is not None and current is not expected):
                return None
            if message_id is not None and current.message_id != message_id:
                return None
            del self._handles[channel_id]
            return current

    async def repoint(self, channel_id: int, message_id: int) -> bool:
        """Point an existing handle at a new message (relocate)."""
        async with self._lock:
            handle = self._handles.get(channel_id)
            if handle is None:
                return False
            handle.message_id = message_id
            return True

    async def drain(self) -> list[DashboardHandle]:
        """Remove and return every handle."""
        async with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            return handles

    def channels(self) -> list[int]:
        return list(self._handles)

    def __len__(self) -> int:
        return len(self._handles)
