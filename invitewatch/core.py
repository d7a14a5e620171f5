"""
Core data structures and interfaces for InviteWatch.

This module defines the notification data model shared by every stage of
the pipeline and the sink interface the presentation layer implements:
- NotificationEvent: one invite or request-invite parsed from a log line
- WorldInfo: world metadata returned by the remote API
- EventSink: where finished events and file changes are pushed
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

WORLD_URL = "https://vrchat.com/home/world/{world_id}"
LAUNCH_URL = "https://vrchat.com/home/launch"


class NotificationKind(str, Enum):
    """Notification types the parser understands."""
    INVITE = "invite"
    REQUEST_INVITE = "requestInvite"


class WorldInfo(BaseModel):
    """World metadata as returned by the remote API."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    name: str = Field(..., min_length=1)
    author_name: str = Field("Unknown", alias="authorName")
    description: str = ""
    image_url: str = Field("", alias="imageUrl")
    thumbnail_image_url: str = Field("", alias="thumbnailImageUrl")
    visits: int = 0
    favorites: int = 0
    capacity: int = 0
    tags: list[str] = Field(default_factory=list)

    @field_validator(
        "id", "author_name", "description", "image_url", "thumbnail_image_url",
        "visits", "favorites", "capacity", "tags",
        mode="before",
    )
    @classmethod
    def _null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # The API sends null for unset fields; fall back to the declared default
        if value is None:
            field = cls.model_fields[info.field_name]
            return field.get_default(call_default_factory=True)
        return value

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the API's camelCase names."""
        return self.model_dump(by_alias=True)


@dataclass
class NotificationEvent:
    """A single invite or request-invite notification."""
    id: str
    timestamp: str  # "YYYY.MM.DD HH:MM:SS"
    username: str
    user_id: str
    kind: NotificationKind
    created_at: str = ""
    world_name: str | None = None
    world_id: str | None = None
    instance_id: str | None = None
    message: str = ""
    details: str = ""
    world: WorldInfo | None = None

    @property
    def is_invite(self) -> bool:
        return self.kind is NotificationKind.INVITE

    @property
    def world_url(self) -> str | None:
        """Web page for the invited world, if known."""
        if not self.world_id:
            return None
        return WORLD_URL.format(world_id=self.world_id)

    @property
    def instance_url(self) -> str | None:
        """Launch link for the invited instance, if known."""
        if not self.world_id or not self.instance_id:
            return None
        query = urlencode({"worldId": self.world_id, "instanceId": self.instance_id})
        return f"{LAUNCH_URL}?{query}"

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping for sinks."""
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "username": self.username,
            "userId": self.user_id,
            "type": self.kind.value,
            "createdAt": self.created_at,
            "message": self.message,
        }
        if self.is_invite:
            data.update({
                "worldName": self.world_name,
                "worldId": self.world_id,
                "instanceId": self.instance_id,
                "worldUrl": self.world_url,
                "instanceUrl": self.instance_url,
            })
        if self.world is not None:
            data["world"] = self.world.to_dict()
        return data


class EventSink(ABC):
    """
    Base class for all output sinks.

    Sinks receive finished notifications plus the informational signals
    about which file is being watched.
    """

    def __init__(self, config: dict[str, Any]):
        """
        Initialize the sink with configuration.

        Args:
            config: Type-specific configuration dictionary
        """
        self.config = config

    @abstractmethod
    def on_notification(self, event: NotificationEvent) -> None:
        """Deliver one finished notification."""
        raise NotImplementedError

    def on_current_file(self, path: str) -> None:
        """Called when watching starts on a file."""

    def on_file_switched(self, path: str) -> None:
        """Called when the supervisor moves to a newer log file."""

    def on_status(self, message: str) -> None:
        """Informational/diagnostic message (errors that were absorbed)."""
