"""Messaging surface: where the dashboard message physically lives."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import discord
from discord.ext import commands

from plexmate.errors import MessageNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageRef:
    channel_id: int
    message_id: int


class MessagingSurface(Protocol):
    async def send(self, channel_id: int, document: discord.Embed) -> MessageRef: ...

    async def edit(self, ref: MessageRef, document: discord.Embed) -> None: ...

    async def delete(self, ref: MessageRef) -> None: ...

    async def fetch(self, channel_id: int, message_id: int) -> MessageRef | None: ...


class DiscordSurface:
    """discord.py implementation. Every send/edit carries the control view."""

    def __init__(self, bot: commands.Bot, view_factory: Callable[[], discord.ui.View]):
        self.bot = bot
        self.view_factory = view_factory

    async def _channel(self, channel_id: int) -> discord.TextChannel | discord.Thread:
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id)
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            raise TypeError(f"Channel {channel_id} is not a text channel")
        return channel

    async def send(self, channel_id: int, document: discord.Embed) -> MessageRef:
        channel = await self._channel(channel_id)
        message = await channel.send(embed=document, view=self.view_factory())
        return MessageRef(channel_id, message.id)

    async def edit(self, ref: MessageRef, document: discord.Embed) -> None:
        channel = await self._channel(ref.channel_id)
        try:
            await channel.get_partial_message(ref.message_id).edit(
                embed=document, view=self.view_factory()
            )
        except discord.NotFound as e:
            raise MessageNotFound(ref.channel_id, ref.message_id) from e

    async def delete(self, ref: MessageRef) -> None:
        channel = await self._channel(ref.channel_id)
        try:
            await channel.get_partial_message(ref.message_id).delete()
        except discord.NotFound:
            logger.debug(f"Message {ref.message_id} already deleted")

    async def fetch(self, channel_id: int, message_id: int) -> MessageRef | None:
        try:
            channel = await self._channel(channel_id)
            message = await channel.fetch_message(message_id)
        except discord.NotFound:
            return None
        return MessageRef(channel_id, message.id)
