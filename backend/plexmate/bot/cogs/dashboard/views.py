"""Dashboard control buttons."""

from typing import TYPE_CHECKING

import discord

from plexmate.dashboard.origin import ControlOrigin

from .constants import (
    ACTION_DOWNLOADS,
    ACTION_HISTORY,
    ACTION_REFRESH,
    ACTION_RELOCATE,
    ACTION_STREAMS,
    BUTTON_DOWNLOADS,
    BUTTON_HISTORY,
    BUTTON_REFRESH,
    BUTTON_RELOCATE,
    BUTTON_STREAMS,
)

if TYPE_CHECKING:
    from .cog import DashboardCog


class DashboardView(discord.ui.View):
    """Persistent controls attached to the dashboard message.

    Fixed ``custom_id``s and ``timeout=None`` let the bot re-attach the
    handlers after a restart via ``bot.add_view``.
    """

    def __init__(self, cog: "DashboardCog"):
        super().__init__(timeout=None)
        self.cog = cog

    async def _dispatch(self, interaction: discord.Interaction, action: str) -> None:
        await self.cog.run_action(ControlOrigin(interaction), action)

    @discord.ui.button(
        label="Refresh", emoji="🔄", style=discord.ButtonStyle.primary, custom_id=BUTTON_REFRESH
    )
    async def refresh_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._dispatch(interaction, ACTION_REFRESH)

    @discord.ui.button(
        label="Streams", emoji="▶️", style=discord.ButtonStyle.secondary, custom_id=BUTTON_STREAMS
    )
    async def streams_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._dispatch(interaction, ACTION_STREAMS)

    @discord.ui.button(
        label="Downloads",
        emoji="⬇️",
        style=discord.ButtonStyle.secondary,
        custom_id=BUTTON_DOWNLOADS,
    )
    async def downloads_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._dispatch(interaction, ACTION_DOWNLOADS)

    @discord.ui.button(
        label="History", emoji="🕘", style=discord.ButtonStyle.secondary, custom_id=BUTTON_HISTORY
    )
    async def history_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._dispatch(interaction, ACTION_HISTORY)

    @discord.ui.button(
        label="Move to Bottom",
        emoji="⏬",
        style=discord.ButtonStyle.secondary,
        custom_id=BUTTON_RELOCATE,
    )
    async def relocate_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._dispatch(interaction, ACTION_RELOCATE)
