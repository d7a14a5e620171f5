"""
Webhook sink for InviteWatch.
"""

from typing import Any

import requests

from invitewatch.core import EventSink, NotificationEvent
from invitewatch.logging_config import get_logger
from invitewatch.registry import register_sink

logger = get_logger(__name__)


@register_sink("webhook")
class WebhookSink(EventSink):
    """
    POSTs each event to an HTTP endpoint as JSON.

    Body: {"event": "notification" | "current_file" | "file_switched" | "status",
           "payload": ...}

    Config:
        url: Webhook URL to POST to
        headers: Optional HTTP headers
        timeout: Request timeout in seconds (default: 10)
        include_status: Also forward status messages (default: False)
    """

    def _post(self, event_name: str, payload: Any) -> bool:
        url = self.config["url"]
        headers = self.config.get("headers", {})
        timeout = self.config.get("timeout", 10)

        try:
            response = requests.post(
                url,
                json={"event": event_name, "payload": payload},
                headers=headers,
                timeout=timeout
            )
            response.raise_for_status()
            logger.debug("Webhook '%s' delivered to %s", event_name, url)
            return True
        except requests.RequestException:
            logger.error("Failed to deliver webhook '%s' to %s", event_name, url, exc_info=True)
            return False

    def on_notification(self, event: NotificationEvent) -> None:
        self._post("notification", event.to_dict())

    def on_current_file(self, path: str) -> None:
        self._post("current_file", {"path": path})

    def on_file_switched(self, path: str) -> None:
        self._post("file_switched", {"path": path})

    def on_status(self, message: str) -> None:
        if self.config.get("include_status", False):
            self._post("status", {"message": message})


__all__ = ["WebhookSink"]
