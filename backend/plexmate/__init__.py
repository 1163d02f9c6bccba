"""PlexMate: a live Plex status dashboard for Discord."""

__version__ = "1.0.0"
