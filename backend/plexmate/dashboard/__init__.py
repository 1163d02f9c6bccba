"""Dashboard core: lifecycle manager, event ingestor and rendering."""

from .ingest import EventIngestor
from .manager import DashboardManager, RefreshOutcome
from .origin import ChannelOrigin, CommandOrigin, ControlOrigin
from .periodic import PeriodicTask
from .registry import DashboardHandle, DashboardRegistry
from .render import DashboardCollector, DashboardState, build_dashboard_embed
from .surface import DiscordSurface, MessageRef, MessagingSurface

__all__ = [
    "ChannelOrigin",
    "CommandOrigin",
    "ControlOrigin",
    "DashboardCollector",
    "DashboardHandle",
    "DashboardManager",
    "DashboardRegistry",
    "DashboardState",
    "DiscordSurface",
    "EventIngestor",
    "MessageRef",
    "MessagingSurface",
    "PeriodicTask",
    "RefreshOutcome",
    "build_dashboard_embed",
]
