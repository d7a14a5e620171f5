"""
Error types raised inside InviteWatch.

None of these are fatal: each is caught at the component that owns the
fallback and either absorbed or reported to the sink as a status message.
"""


class InviteWatchError(Exception):
    """Base class for all InviteWatch errors."""


class ParseMismatch(InviteWatchError):
    """A line carried the notification markers but failed the grammar."""

    def __init__(self, line: str, reason: str = "line did not match notification grammar"):
        super().__init__(f"{reason}: {line}")
        self.line = line
        self.reason = reason


class DirectoryUnavailable(InviteWatchError):
    """The watched directory is missing or unreadable."""

    def __init__(self, directory: str, reason: str):
        super().__init__(f"Log directory unavailable: {directory} ({reason})")
        self.directory = directory
        self.reason = reason


class ReadFailure(InviteWatchError):
    """Reading the new byte range of the current log file failed."""

    def __init__(self, path: str, offset: int, cause: BaseException):
        super().__init__(f"Error reading {path} from offset {offset}: {cause}")
        self.path = path
        self.offset = offset
        self.cause = cause


class RemoteFetchFailure(InviteWatchError):
    """Transient metadata fetch failure (transport, status, or payload)."""

    def __init__(self, entity_id: str, reason: str):
        super().__init__(f"Failed to fetch metadata for {entity_id}: {reason}")
        self.entity_id = entity_id
        self.reason = reason


class WorldNotFound(RemoteFetchFailure):
    """The remote API answered 404 for this id."""

    def __init__(self, entity_id: str):
        super().__init__(entity_id, "not found")
