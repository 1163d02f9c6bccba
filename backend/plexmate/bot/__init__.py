"""Discord process: settings, logging, client and cogs."""
