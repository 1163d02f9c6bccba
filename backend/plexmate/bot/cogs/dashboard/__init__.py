"""Dashboard feature module."""

from discord.ext import commands

from .cog import DashboardCog

__all__ = ["DashboardCog", "setup"]


async def setup(bot: commands.Bot) -> None:
    """Extension entry point."""
    await bot.add_cog(DashboardCog(bot))  # type: ignore[arg-type]
