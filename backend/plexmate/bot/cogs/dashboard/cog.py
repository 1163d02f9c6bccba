"""Dashboard feature cog."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from plexmate.dashboard.ingest import EventIngestor
from plexmate.dashboard.manager import DashboardManager, RefreshOutcome
from plexmate.dashboard.origin import ChannelOrigin, CommandOrigin, ControlOrigin
from plexmate.dashboard.render import (
    DashboardCollector,
    build_dashboard_embed,
    build_downloads_embed,
    build_history_embed,
    build_streams_embed,
)
from plexmate.dashboard.surface import DiscordSurface
from plexmate.errors import DashboardError
from plexmate.repositories import DashboardRepository, HistoryRepository
from plexmate.services import (
    SOURCE_RADARR,
    SOURCE_SONARR,
    ArrClient,
    TautulliClient,
    create_download_client,
)

from .constants import (
    ACTION_DOWNLOADS,
    ACTION_HISTORY,
    ACTION_REFRESH,
    ACTION_RELOCATE,
    ACTION_START,
    ACTION_STOP,
    ACTION_STREAMS,
    ADMIN_ONLY_MESSAGE,
    GENERIC_FAILURE_MESSAGE,
    PREFIX_ALIASES,
    USAGE_MESSAGE,
)
from .views import DashboardView

if TYPE_CHECKING:
    from plexmate.bot.bot import PlexMateBot

logger = logging.getLogger(__name__)

_REFRESH_REPLIES = {
    RefreshOutcome.EDITED: "Dashboard refreshed!",
    RefreshOutcome.CREATED: "Dashboard created.",
    RefreshOutcome.RELOCATED: "Dashboard moved to the bottom of the channel.",
}


class DashboardCog(commands.Cog):
    """Live Plex dashboard"""

    def __init__(self, bot: PlexMateBot):
        self.bot = bot
        self.settings = bot.settings

        pool = bot.db.pool
        self.history = HistoryRepository(pool)
        self.ingestor = EventIngestor(self.history)
        self.clients = self._build_clients()
        self.collector = DashboardCollector(
            self.history,
            self.ingestor,
            activity=self.clients["activity"],
            queues=self.clients["queues"],
            downloads=self.clients["downloads"],
        )
        self.manager = DashboardManager(
            DashboardRepository(pool),
            DiscordSurface(bot, lambda: DashboardView(self)),
            self.render_dashboard,
            refresh_interval=self.settings.dashboard_update_interval,
        )
        self._actions: dict[str, Callable[[CommandOrigin], Awaitable[None]]] = {
            ACTION_START: self._start,
            ACTION_STOP: self._stop,
            ACTION_REFRESH: self._refresh,
            ACTION_RELOCATE: self._relocate,
            ACTION_STREAMS: self._show_streams,
            ACTION_DOWNLOADS: self._show_downloads,
            ACTION_HISTORY: self._show_history,
        }
        self._reconcile_task: asyncio.Task | None = None

    def _build_clients(self) -> dict:
        s = self.settings
        tautulli = TautulliClient(s.tautulli_url, s.tautulli_api_key)
        queues = [
            ArrClient(SOURCE_SONARR, s.sonarr_url, s.sonarr_api_key),
            ArrClient(SOURCE_RADARR, s.radarr_url, s.radarr_api_key),
        ]
        configured = [q for q in queues if q.is_configured]
        if not tautulli.is_configured:
            logger.warning("Tautulli URL or API key not configured, streams section disabled")
        if len(configured) < len(queues):
            missing = ", ".join(q.name for q in queues if not q.is_configured)
            logger.warning(f"Queue source(s) not configured: {missing}")
        return {
            "activity": tautulli if tautulli.is_configured else None,
            "queues": configured,
            "downloads": create_download_client(
                s.download_client,
                qbittorrent_url=s.qbittorrent_url,
                qbittorrent_username=s.qbittorrent_username,
                qbittorrent_password=s.qbittorrent_password,
                sabnzbd_url=s.sabnzbd_url,
                sabnzbd_api_key=s.sabnzbd_api_key,
            ),
            "all": [tautulli, *queues],
        }

    async def cog_load(self) -> None:
        # Re-attach button handlers to dashboards sent by earlier processes
        self.bot.add_view(DashboardView(self))
        # Non-blocking: reconcile once the gateway is ready
        self._reconcile_task = asyncio.create_task(self._reconcile_when_ready())
        logger.info("Dashboard cog loaded")

    async def _reconcile_when_ready(self) -> None:
        await self.bot.wait_until_ready()
        await self.manager.reconcile_on_startup()

    async def cog_unload(self) -> None:
        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_task.cancel()
            await asyncio.wait({self._reconcile_task})
        await self.manager.shutdown()
        clients = list(self.clients["all"])
        if self.clients["downloads"] is not None:
            clients.append(self.clients["downloads"])
        for client in clients:
            await client.close()

    async def render_dashboard(self) -> discord.Embed:
        state = await self.collector.collect()
        return build_dashboard_embed(state, self.settings.dashboard_update_interval / 1000)

    # ==================== Dispatch ====================

    async def run_action(self, origin: CommandOrigin, action: str) -> None:
        """Command boundary: every dashboard entry point ends up here."""
        if origin.channel_id != self.settings.admin_channel_id:
            await origin.respond(ADMIN_ONLY_MESSAGE)
            return

        handler = self._actions.get(action)
        if handler is None:
            await origin.respond(USAGE_MESSAGE)
            return

        try:
            await origin.acknowledge()
            await handler(origin)
        except DashboardError as e:
            logger.info(f"Dashboard {action} refused: {e}")
            await origin.respond(e.notice)
        except Exception as e:
            logger.exception(f"Dashboard {action} failed: {e}")
            try:
                await origin.respond(GENERIC_FAILURE_MESSAGE)
            except discord.HTTPException:
                logger.warning("Could not deliver failure notice")

    # ==================== Actions ====================

    async def _start(self, origin: CommandOrigin) -> None:
        await self.manager.create(origin.channel_id, origin.user_id)
        await origin.respond("Dashboard created.")

    async def _stop(self, origin: CommandOrigin) -> None:
        await self.manager.stop(origin.channel_id)
        await origin.respond("Dashboard stopped. It will no longer update.")

    async def _refresh(self, origin: CommandOrigin) -> None:
        outcome = await self.manager.refresh(origin.channel_id, origin.user_id)
        await origin.respond(_REFRESH_REPLIES[outcome])

    async def _relocate(self, origin: CommandOrigin) -> None:
        outcome = await self.manager.refresh(origin.channel_id, origin.user_id, relocate=True)
        await origin.respond(_REFRESH_REPLIES[outcome])

    async def _show_streams(self, origin: CommandOrigin) -> None:
        section = await self.collector.collect_streams()
        await origin.respond(embed=build_streams_embed(section))

    async def _show_downloads(self, origin: CommandOrigin) -> None:
        queues, downloads = await asyncio.gather(
            self.collector.collect_queues(), self.collector.collect_downloads()
        )
        await origin.respond(embed=build_downloads_embed(queues, downloads))

    async def _show_history(self, origin: CommandOrigin) -> None:
        section = await self.collector.collect_history()
        await origin.respond(embed=build_history_embed(section))

    # ==================== Commands ====================

    @commands.command(name="stats")
    async def stats_command(self, ctx: commands.Context, action: str = "") -> None:
        """`!stats [dashboard|stop|refresh|move|streams|downloads|history]`"""
        await self.run_action(ChannelOrigin(ctx), PREFIX_ALIASES.get(action.lower(), action))

    dashboard_group = app_commands.Group(name="dashboard", description="Plex dashboard")

    @dashboard_group.command(name="start", description="Post the live dashboard here")
    async def dashboard_start(self, interaction: discord.Interaction) -> None:
        await self.run_action(ControlOrigin(interaction), ACTION_START)

    @dashboard_group.command(name="stop", description="Stop updating the dashboard")
    async def dashboard_stop(self, interaction: discord.Interaction) -> None:
        await self.run_action(ControlOrigin(interaction), ACTION_STOP)

    @dashboard_group.command(name="refresh", description="Refresh the dashboard now")
    async def dashboard_refresh(self, interaction: discord.Interaction) -> None:
        await self.run_action(ControlOrigin(interaction), ACTION_REFRESH)

    @dashboard_group.command(name="relocate", description="Move the dashboard to the bottom")
    async def dashboard_relocate(self, interaction: discord.Interaction) -> None:
        await self.run_action(ControlOrigin(interaction), ACTION_RELOCATE)

    @dashboard_group.command(name="streams", description="Show current streams")
    async def dashboard_streams(self, interaction: discord.Interaction) -> None:
        await self.run_action(ControlOrigin(interaction), ACTION_STREAMS)

    @dashboard_group.command(name="downloads", description="Show download queues")
    async def dashboard_downloads(self, interaction: discord.Interaction) -> None:
        await self.run_action(ControlOrigin(interaction), ACTION_DOWNLOADS)

    @dashboard_group.command(name="history", description="Show watch and download history")
    async def dashboard_history(self, interaction: discord.Interaction) -> None:
        await self.run_action(ControlOrigin(interaction), ACTION_HISTORY)
