"""
Extracts invite notifications from client log lines.

Only one line grammar is recognized:

    2026.02.08 23:09:18 Log - [Behaviour] Received Notification: <Notification from
    username:Alice, sender user id:usr_1 to of type: invite, id: ntf_1,
    created at: 2026.02.08 23:09:18 UTC, details: {{worldId=wrld_9:i_1,
    worldName=Cool World}}, type:invite, m seen:False...>
"""

import re

from invitewatch.core import NotificationEvent, NotificationKind
from invitewatch.errors import ParseMismatch

NOTIFICATION_MARKER = "Received Notification"
TYPE_MARKERS = ("type: invite", "type: requestInvite")

NOTIFICATION_RE = re.compile(
    r"^(\d{4}\.\d{2}\.\d{2} \d{2}:\d{2}:\d{2})"
    r".*Received Notification:"
    r".*username:([^,]+)"
    r".*user id:([^,\s]+)"
    r".*type:\s*(invite|requestInvite)"
    r".*id:\s*([^,\s]+)"
    r".*created at: ([^,]+)"
    r".*details:\s*\{\{(.*?)\}\}"
)
WORLD_ID_RE = re.compile(r"worldId=([^:,]+)")
INSTANCE_ID_RE = re.compile(r"worldId=[^:]+:([^,]+)")
WORLD_NAME_RE = re.compile(r"worldName=([^}]+)")


def is_candidate(line: str) -> bool:
    """True if the line carries the notification and type markers."""
    return NOTIFICATION_MARKER in line and any(m in line for m in TYPE_MARKERS)


def _field(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def parse_or_raise(line: str) -> NotificationEvent | None:
    """
    Parse a log line, distinguishing "not a notification" from "broken".

    Returns:
        The parsed event, or None when the line has no notification markers

    Raises:
        ParseMismatch: If the markers are present but the grammar fails
    """
    if not is_candidate(line):
        return None

    match = NOTIFICATION_RE.search(line)
    if not match:
        raise ParseMismatch(line)

    timestamp, username, user_id, type_name, notification_id, created_at, details = match.groups()
    kind = NotificationKind(type_name)

    event = NotificationEvent(
        id=notification_id,
        timestamp=timestamp,
        username=username.strip(),
        user_id=user_id,
        kind=kind,
        created_at=created_at.strip(),
        details=details,
    )

    if kind is NotificationKind.INVITE:
        if not details.strip():
            raise ParseMismatch(line, "invite has an empty details blob")
        event.world_id = _field(WORLD_ID_RE, details)
        event.instance_id = _field(INSTANCE_ID_RE, details)
        event.world_name = _field(WORLD_NAME_RE, details)

    return event


def parse(line: str) -> NotificationEvent | None:
    """Parse a log line; any failure yields None."""
    try:
        return parse_or_raise(line)
    except ParseMismatch:
        return None
