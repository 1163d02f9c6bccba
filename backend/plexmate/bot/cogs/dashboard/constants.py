"""Dashboard command constants."""

# Actions shared by prefix commands, slash commands and buttons
ACTION_START = "start"
ACTION_STOP = "stop"
ACTION_REFRESH = "refresh"
ACTION_RELOCATE = "relocate"
ACTION_STREAMS = "streams"
ACTION_DOWNLOADS = "downloads"
ACTION_HISTORY = "history"

# `!stats <arg>` spellings
PREFIX_ALIASES = {
    "": ACTION_START,
    "dashboard": ACTION_START,
    "start": ACTION_START,
    "stop": ACTION_STOP,
    "refresh": ACTION_REFRESH,
    "move": ACTION_RELOCATE,
    "relocate": ACTION_RELOCATE,
    "streams": ACTION_STREAMS,
    "downloads": ACTION_DOWNLOADS,
    "history": ACTION_HISTORY,
}

# Persistent button ids, stable across restarts
BUTTON_REFRESH = "dashboard_refresh"
BUTTON_STREAMS = "dashboard_streams"
BUTTON_DOWNLOADS = "dashboard_downloads"
BUTTON_HISTORY = "dashboard_history"
BUTTON_RELOCATE = "dashboard_relocate"

ADMIN_ONLY_MESSAGE = "This command is only available in the admin channel."
GENERIC_FAILURE_MESSAGE = "An error occurred while processing your command. Please try again later."
USAGE_MESSAGE = (
    "Usage: `!stats [dashboard|stop|refresh|move|streams|downloads|history]`"
)
