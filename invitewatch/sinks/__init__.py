"""
InviteWatch output sinks.

Importing this package registers every built-in sink type with the
registry so `create_sink("console", ...)` and friends resolve.
"""

from invitewatch.sinks.console import ConsoleSink
from invitewatch.sinks.webhook import WebhookSink

__all__ = ["ConsoleSink", "WebhookSink"]
