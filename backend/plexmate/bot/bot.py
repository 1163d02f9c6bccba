"""
PlexMate Discord bot
discord.py 2.x with prefix and slash commands
"""

import asyncio
import logging

import discord
from discord.ext import commands
from dotenv import load_dotenv
from pydantic import ValidationError

from plexmate.bot.config import BACKEND_DIR, BotSettings, get_settings
from plexmate.bot.logging import setup_logging
from plexmate.database import DatabaseManager, PoolConfig
from plexmate.migrations import MigrationRunner

logger = logging.getLogger("plexmate")


class PlexMateBot(commands.Bot):
    """PlexMate Discord client"""

    def __init__(self, settings: BotSettings):
        intents = discord.Intents.default()
        intents.message_content = True  # `!stats` prefix command

        super().__init__(
            command_prefix=commands.when_mentioned_or(settings.command_prefix),
            intents=intents,
            help_command=None,
        )

        self.settings = settings
        self.db = DatabaseManager(settings.database_url, PoolConfig.for_profile("bot"))
        self.initial_extensions = [
            "plexmate.bot.cogs.dashboard",
        ]

    async def setup_hook(self):
        """Connect storage, load cogs and sync slash commands before login"""
        await self.db.connect()
        await MigrationRunner(self.db.pool).run_pending()

        loaded = []
        failed = []
        for extension in self.initial_extensions:
            try:
                await self.load_extension(extension)
                loaded.append(extension.split(".")[-1])
            except Exception as e:
                failed.append(f"{extension.split('.')[-1]} ({e})")
                logger.error(f"Failed to load {extension}", exc_info=e)

        if loaded:
            logger.info(f"[green]Loaded cogs:[/green] {', '.join(loaded)}")
        if failed:
            logger.error(f"[red]Failed cogs:[/red] {', '.join(failed)}")

        logger.info("[yellow]Syncing slash commands...[/yellow]")
        guild_id = self.settings.discord_guild_id
        if guild_id:
            # Guild sync is immediate; global sync can take up to an hour
            guild = discord.Object(id=guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info(f"[magenta]Slash commands synced to guild {guild_id}[/magenta]")
        else:
            await self.tree.sync()
            logger.info("[magenta]Slash commands synced globally[/magenta]")

    async def on_ready(self):
        logger.info(
            f"[bold green]Bot ready:[/bold green] {self.user} [dim](ID: {self.user.id})[/dim]"
        )
        logger.info(
            f"[cyan]Connected:[/cyan] {len(self.guilds)} guild(s) | discord.py {discord.__version__}"
        )
        if not await self.db.check_health():
            logger.warning("[yellow]Database is not answering, history will be unavailable[/yellow]")

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        """Errors raised outside the dashboard command boundary"""
        if isinstance(error, commands.CommandNotFound):
            return

        if isinstance(error, commands.BadArgument):
            await ctx.send(f"Invalid argument: {error}")
            return

        logger.error(f"Command error: {error}", exc_info=error)
        await ctx.send("An error occurred while processing your command. Please try again later.")

    async def close(self):
        await super().close()
        await self.db.disconnect()


async def main():
    """Bot entry point"""
    load_dotenv(dotenv_path=BACKEND_DIR / ".env", encoding="utf-8")

    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        missing = ", ".join(str(err["loc"][0]).upper() for err in e.errors())
        logger.error(f"[bold red]Invalid configuration:[/bold red] {missing}")
        return

    setup_logging(settings.log_level)

    if not settings.discord_token:
        logger.error("[bold red]DISCORD_TOKEN is not set[/bold red]")
        logger.error("Set it in backend/.env: DISCORD_TOKEN=your_token_here")
        return

    async with PlexMateBot(settings) as bot:
        try:
            await bot.start(settings.discord_token)
        except (KeyboardInterrupt, asyncio.CancelledError):
            if not bot.is_closed():
                await bot.close()


def run():
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("[yellow]Bot stopped[/yellow]")
    except Exception as e:
        logger.error(f"[bold red]Bot crashed:[/bold red] {e}", exc_info=e)
        raise


if __name__ == "__main__":
    run()
