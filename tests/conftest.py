"""
Pytest configuration and fixtures for InviteWatch tests.
"""

import time
from collections.abc import Callable
from pathlib import Path

import pytest

from invitewatch.core import EventSink, NotificationEvent

INVITE_LINE = (
    "2026.02.08 23:09:18 Log        -  [Behaviour] Received Notification: "
    "<Notification from username:Alice, sender user id:usr_1 to of type: invite, "
    "id: ntf_1, created at: 2026.02.08 23:09:18 UTC, "
    "details: {{worldId=wrld_9:i_1, worldName=Cool World}}, type:invite, "
    "m seen:False, message: \"\">"
)

INVITE_LINE_NO_NAME = (
    "2026.02.08 23:10:02 Log        -  [Behaviour] Received Notification: "
    "<Notification from username:Alice, sender user id:usr_1 to of type: invite, "
    "id: ntf_2, created at: 2026.02.08 23:10:02 UTC, "
    "details: {{worldId=wrld_9:i_1}}, type:invite, m seen:False, message: \"\">"
)

REQUEST_INVITE_LINE = (
    "2026.02.08 23:11:45 Log        -  [Behaviour] Received Notification: "
    "<Notification from username:Bob Smith, sender user id:usr_2 to of type: requestInvite, "
    "id: ntf_3, created at: 2026.02.08 23:11:45 UTC, "
    "details: {{}}, type:requestInvite, m seen:False, message: \"\">"
)

NOISE_LINE = "2026.02.08 23:09:20 Log        -  [Behaviour] OnPlayerJoined Alice"


class RecordingSink(EventSink):
    """Sink that records everything it receives."""

    def __init__(self) -> None:
        super().__init__({})
        self.events: list[NotificationEvent] = []
        self.current_files: list[str] = []
        self.switched: list[str] = []
        self.statuses: list[str] = []

    def on_notification(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def on_current_file(self, path: str) -> None:
        self.current_files.append(path)

    def on_file_switched(self, path: str) -> None:
        self.switched.append(path)

    def on_status(self, message: str) -> None:
        self.statuses.append(message)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    """Poll `predicate` until it is true or `timeout` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def append(path: Path, text: str) -> None:
    with path.open("a", encoding="utf-8", newline="") as f:
        f.write(text)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """Empty directory standing in for the client's log folder."""
    directory = tmp_path / "logs"
    directory.mkdir()
    return directory
