"""CLI command modules for the cropdoc agent."""

from cropdoc.cli_commands.queue import queue_app

__all__ = ["queue_app"]
