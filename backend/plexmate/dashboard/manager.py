"""Dashboard lifecycle: create, refresh, relocate, stop and startup reconciliation.

The persisted ``DashboardConfig`` says where the dashboard lives; the
in-memory registry says which dashboards have a running refresh task in
this process. The two can drift (a message deleted by hand, a restart,
a failed tick) and every operation below reconciles them.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from plexmate.errors import AlreadyActive, ChannelMismatch, MessageNotFound, NotActive
from plexmate.models.dashboard import DEFAULT_REFRESH_INTERVAL_MS, DashboardConfig

from .periodic import PeriodicTask
from .registry import DashboardHandle, DashboardRegistry
from .store import ConfigStore
from .surface import MessageRef, MessagingSurface

logger = logging.getLogger(__name__)

Renderer = Callable[[], Awaitable[Any]]


class RefreshOutcome(enum.Enum):
    EDITED = "edited"
    CREATED = "created"
    RELOCATED = "relocated"


class DashboardManager:
    """Owns every live dashboard of this process."""

    def __init__(
        self,
        store: ConfigStore,
        surface: MessagingSurface,
        render: Renderer,
        registry: DashboardRegistry | None = None,
        *,
        refresh_interval: int = DEFAULT_REFRESH_INTERVAL_MS,
    ):
        self.store = store
        self.surface = surface
        self.render = render
        self.registry = registry or DashboardRegistry()
        self.refresh_interval = refresh_interval

    # ==================== Handles ====================

    async def _activate(
        self, channel_id: int, message_id: int, interval_ms: int
    ) -> DashboardHandle | None:
        """Register and start a refresh task. None if the channel already has one."""
        task = PeriodicTask(
            interval_ms / 1000,
            lambda: self._tick(channel_id, task),
            name=f"dashboard-{channel_id}",
        )
        handle = DashboardHandle(message_id=message_id, task=task)

        if not await self.registry.try_register(channel_id, handle):
            return None
        task.start()
        return handle

    async def _drop(self, channel_id: int, handle: DashboardHandle) -> None:
        handle.task.cancel()
        await self.registry.remove(channel_id, expected=handle)

    async def is_active(self, channel_id: int) -> bool:
        return await self.registry.has(channel_id)

    # ==================== Operations ====================

    async def create(self, channel_id: int, owner_id: int) -> DashboardConfig:
        """Send a new dashboard to *channel_id* and start refreshing it."""
        config = await self.store.get_config()
        if config is not None and await self.registry.has(config.channel_id):
            raise AlreadyActive(config.channel_id)
        if await self.registry.has(channel_id):
            raise AlreadyActive(channel_id)

        document = await self.render()
        ref = await self.surface.send(channel_id, document)

        new_config = DashboardConfig(
            message_id=ref.message_id,
            channel_id=channel_id,
            owner_id=owner_id,
            refresh_interval=self.refresh_interval,
        )
        handle = await self._activate(channel_id, ref.message_id, self.refresh_interval)
        if handle is None:
            # Lost a race with a concurrent create; keep theirs
            await self._delete_quietly(ref)
            raise AlreadyActive(channel_id)

        try:
            await self.store.set_config(new_config)
        except Exception:
            await self._drop(channel_id, handle)
            await self._delete_quietly(ref)
            raise

        logger.info(f"Dashboard created in channel {channel_id} (message {ref.message_id})")
        return new_config

    async def stop(self, channel_id: int) -> None:
        """Stop refreshing. The persisted config is kept."""
        handle = await self.registry.remove(channel_id)
        if handle is None:
            raise NotActive(channel_id)
        handle.task.cancel()
        logger.info(f"Dashboard stopped in channel {channel_id}")

    async def refresh(
        self, channel_id: int, owner_id: int, *, relocate: bool = False
    ) -> RefreshOutcome:
        """Bring the dashboard in *channel_id* up to date, creating it if needed."""
        # 1. Live handle in this channel
        handle = await self.registry.get(channel_id)
        if handle is not None:
            ref = await self.surface.fetch(channel_id, handle.message_id)
            if ref is not None:
                if relocate:
                    await self._relocate(channel_id, ref)
                    return RefreshOutcome.RELOCATED
                await self._edit(ref)
                return RefreshOutcome.EDITED
            logger.warning(
                f"Dashboard message {handle.message_id} vanished from channel {channel_id}"
            )
            await self._drop(channel_id, handle)

        # 2. Nothing persisted
        config = await self.store.get_config()
        if config is None:
            await self.create(channel_id, owner_id)
            return RefreshOutcome.CREATED

        # 3. Persisted elsewhere
        if config.channel_id != channel_id:
            raise ChannelMismatch(channel_id, config.channel_id)

        # 4. Persisted here
        ref = await self.surface.fetch(channel_id, config.message_id)
        if ref is None:
            logger.info(f"Configured dashboard message {config.message_id} not found, recreating")
            await self.create(channel_id, owner_id)
            return RefreshOutcome.CREATED

        if relocate:
            ref = await self._relocate(channel_id, ref, config)
            outcome = RefreshOutcome.RELOCATED
        else:
            await self._edit(ref)
            outcome = RefreshOutcome.EDITED

        # Self-healing: the dashboard exists but this process was not refreshing it
        if await self._activate(channel_id, ref.message_id, config.refresh_interval):
            logger.info(f"Re-registered dashboard in channel {channel_id}")
        return outcome

    async def reconcile_on_startup(self) -> bool:
        """Resume the persisted dashboard, if its message still exists."""
        try:
            config = await self.store.get_config()
            if config is None:
                logger.info("No dashboard configured")
                return False

            ref = await self.surface.fetch(config.channel_id, config.message_id)
            if ref is None:
                logger.warning(
                    f"Dashboard message {config.message_id} in channel "
                    f"{config.channel_id} not found, leaving dashboard inactive"
                )
                return False

            await self._edit(ref)
            if not await self._activate(config.channel_id, ref.message_id, config.refresh_interval):
                return False
        except Exception as e:
            logger.exception(f"Dashboard reconciliation failed: {e}")
            return False

        logger.info(f"Dashboard resumed in channel {config.channel_id}")
        return True

    async def shutdown(self) -> None:
        """Cancel every refresh task."""
        for handle in await self.registry.drain():
            handle.task.cancel()

    # ==================== Internals ====================

    async def _edit(self, ref: MessageRef) -> None:
        document = await self.render()
        await self.surface.edit(ref, document)
        await self.store.touch_config(ref.message_id)

    async def _relocate(
        self,
        channel_id: int,
        old: MessageRef,
        config: DashboardConfig | None = None,
    ) -> MessageRef:
        """Move the dashboard to the bottom of the channel under the same identity."""
        document = await self.render()
        new = await self.surface.send(channel_id, document)
        await self._delete_quietly(old)

        config = config or await self.store.get_config()
        await self.store.set_config(
            DashboardConfig(
                message_id=new.message_id,
                channel_id=channel_id,
                owner_id=config.owner_id if config else 0,
                refresh_interval=config.refresh_interval if config else self.refresh_interval,
            )
        )
        await self.registry.repoint(channel_id, new.message_id)
        logger.info(f"Dashboard relocated in channel {channel_id}: {old.message_id} -> {new.message_id}")
        return new

    async def _delete_quietly(self, ref: MessageRef) -> None:
        try:
            await self.surface.delete(ref)
        except Exception as e:
            logger.warning(f"Could not delete message {ref.message_id}: {type(e).__name__}: {e}")

    async def _tick(self, channel_id: int, task: PeriodicTask) -> None:
        """Periodic refresh. Any failure deactivates the dashboard."""
        handle = await self.registry.get(channel_id)
        if handle is None or handle.task is not task:
            task.cancel()
            return
        # A relocate can repoint the handle while this tick is rendering
        message_id = handle.message_id
        try:
            await self._edit(MessageRef(channel_id, message_id))
        except MessageNotFound:
            if await self._drop_if_current(channel_id, handle, message_id):
                logger.warning(f"Dashboard message in channel {channel_id} is gone, stopping refresh")
        except Exception as e:
            if await self._drop_if_current(channel_id, handle, message_id):
                logger.error(f"Dashboard refresh failed in channel {channel_id}: {e}", exc_info=e)

    async def _drop_if_current(
        self, channel_id: int, handle: DashboardHandle, message_id: int
    ) -> bool:
        """Drop *handle* unless it moved off *message_id* in the meantime."""
        if await self.registry.remove(channel_id, expected=handle, message_id=message_id) is None:
            logger.debug(f"Dashboard in channel {channel_id} moved during refresh, keeping it")
            return False
        handle.task.cancel()
        return True
