"""Where a dashboard command came from, behind one respond() interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

import discord
from discord.ext import commands


class CommandOrigin(ABC):
    """A prefix command in a channel, or an interaction (slash command / button)."""

    @property
    @abstractmethod
    def channel_id(self) -> int: ...

    @property
    @abstractmethod
    def user_id(self) -> int: ...

    async def acknowledge(self) -> None:
        """Signal that work is in progress. No-op by default."""

    @abstractmethod
    async def respond(
        self, content: str | None = None, *, embed: discord.Embed | None = None
    ) -> None: ...


class ChannelOrigin(CommandOrigin):
    """``!stats ...`` typed in a channel."""

    def __init__(self, ctx: commands.Context):
        self.ctx = ctx

    @property
    def channel_id(self) -> int:
        return self.ctx.channel.id

    @property
    def user_id(self) -> int:
        return self.ctx.author.id

    async def respond(
        self, content: str | None = None, *, embed: discord.Embed | None = None
    ) -> None:
        kwargs = {"embed": embed} if embed is not None else {}
        await self.ctx.reply(content, mention_author=False, **kwargs)


class ControlOrigin(CommandOrigin):
    """A slash command or a dashboard button. Replies are ephemeral."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    @property
    def channel_id(self) -> int:
        return self.interaction.channel_id or 0

    @property
    def user_id(self) -> int:
        return self.interaction.user.id

    async def acknowledge(self) -> None:
        if not self.interaction.response.is_done():
            await self.interaction.response.defer(ephemeral=True, thinking=True)

    async def respond(
        self, content: str | None = None, *, embed: discord.Embed | None = None
    ) -> None:
        kwargs = {"embed": embed} if embed is not None else {}
        if self.interaction.response.is_done():
            await self.interaction.followup.send(content, ephemeral=True, **kwargs)
        else:
            await self.interaction.response.send_message(content, ephemeral=True, **kwargs)
