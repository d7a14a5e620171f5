"""
Console sink for InviteWatch.
"""

from invitewatch.core import EventSink, NotificationEvent, NotificationKind
from invitewatch.logging_config import get_logger
from invitewatch.registry import register_sink

logger = get_logger(__name__)

LABELS = {
    NotificationKind.INVITE: "INVITE",
    NotificationKind.REQUEST_INVITE: "REQUEST INVITE",
}


@register_sink("console")
class ConsoleSink(EventSink):
    """
    Prints notifications to stdout.

    Config:
        show_status: Also print status messages (default: False)
    """

    def on_notification(self, event: NotificationEvent) -> None:
        """Print one notification as a framed block."""
        logger.info("Console notification %s from %s", event.id, event.username)

        print(f"\n{'=' * 60}")
        print(f"{LABELS[event.kind]}: {event.username} ({event.user_id})")
        print(f"Time: {event.timestamp}")
        if event.is_invite:
            print(f"World: {event.world_name or event.world_id or '?'}")
            if event.instance_url:
                print(f"Join: {event.instance_url}")
            elif event.world_url:
                print(f"World page: {event.world_url}")
        if event.message:
            print(f"Message: {event.message}")
        print(f"{'=' * 60}\n")

    def on_current_file(self, path: str) -> None:
        print(f"Watching: {path}")

    def on_file_switched(self, path: str) -> None:
        print(f"Switched to new log file: {path}")

    def on_status(self, message: str) -> None:
        if self.config.get("show_status", False):
            print(f"[status] {message}")


__all__ = ["ConsoleSink"]
