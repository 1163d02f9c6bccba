"""Dashboard error taxonomy."""


class DashboardError(Exception):
    """Base class for failures surfaced to the command caller."""

    notice = "Dashboard operation failed."


class AlreadyActive(DashboardError):
    notice = "A dashboard is already running."

    def __init__(self, channel_id: int):
        super().__init__(f"Dashboard already active in channel {channel_id}")
        self.channel_id = channel_id


class NotActive(DashboardError):
    notice = "There is no active dashboard in this channel."

    def __init__(self, channel_id: int):
        super().__init__(f"No active dashboard in channel {channel_id}")
        self.channel_id = channel_id


class ChannelMismatch(DashboardError):
    """The persisted dashboard lives in another channel."""

    def __init__(self, requested_channel_id: int, configured_channel_id: int):
        super().__init__(
            f"Dashboard lives in channel {configured_channel_id}, "
            f"not {requested_channel_id}"
        )
        self.requested_channel_id = requested_channel_id
        self.configured_channel_id = configured_channel_id

    @property
    def notice(self) -> str:  # type: ignore[override]
        return f"The dashboard lives in <#{self.configured_channel_id}>. Refresh it there."


class MessageNotFound(DashboardError):
    notice = "The dashboard message no longer exists."

    def __init__(self, channel_id: int, message_id: int):
        super().__init__(f"Message {message_id} not found in channel {channel_id}")
        self.channel_id = channel_id
        self.message_id = message_id


class UpstreamUnavailable(DashboardError):
    """A live source (Tautulli, an arr queue, the download client) failed."""

    notice = "An upstream service is unavailable."

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source} unavailable: {reason}")
        self.source = source
        self.reason = reason


class ConfigurationMissing(DashboardError):
    notice = "This feature is not configured."

    def __init__(self, what: str):
        super().__init__(f"{what} is not configured")
        self.what = what
