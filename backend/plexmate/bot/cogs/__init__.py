"""discord.py extensions loaded by the PlexMate bot."""
