"""
Tails a single log file by polling its size.

Native change notifications are unreliable for files written by another
process on some platforms, so growth is detected by comparing the file
size against the committed offset on a fixed interval.
"""

import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from invitewatch.core import NotificationEvent
from invitewatch.errors import InviteWatchError, ParseMismatch, ReadFailure
from invitewatch.logging_config import get_logger
from invitewatch.parser import is_candidate, parse_or_raise
from invitewatch.resolver import MetadataResolver

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1.0


class TailerState(Enum):
    IDLE = "idle"
    WATCHING = "watching"
    READING = "reading"


@dataclass
class TailState:
    """Read position within one file."""
    file_path: str
    byte_offset: int = 0
    pending_fragment: bytes = b""


class FileTailer:
    """
    Emits notification events for lines appended to one file.

    Content present when start() is called is never processed. Each
    poll reads exactly the bytes between the committed offset and the
    current size, holds back an unterminated last line, and pushes the
    parsed and resolved events to `on_event` in file order.
    """

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        on_event: Callable[[NotificationEvent], None],
        resolver: MetadataResolver | None = None,
        on_error: Callable[[InviteWatchError], None] | None = None,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        parser: Callable[[str], NotificationEvent | None] = parse_or_raise,
    ) -> None:
        self.on_event = on_event
        self.resolver = resolver
        self.on_error = on_error
        self.interval = interval
        self.parser = parser
        self.state = TailerState.IDLE
        self.tail_state: TailState | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._poll_lock = threading.Lock()

    @property
    def file_path(self) -> str | None:
        return self.tail_state.file_path if self.tail_state else None

    def start(self, path: str, background: bool = True) -> None:
        """
        Begin tailing `path` from its current end.

        Args:
            path: File to tail
            background: Start the polling thread (tests drive poll() directly)
        """
        if self.state is not TailerState.IDLE:
            self.stop()

        try:
            offset = os.stat(path).st_size
        except OSError as e:
            logger.warning("Failed to stat log file %s: %s", path, e)
            offset = 0

        self._stop_event = threading.Event()
        self.tail_state = TailState(file_path=path, byte_offset=offset)
        self.state = TailerState.WATCHING
        logger.info("Watching log file: %s (Size: %d)", path, offset)

        if background:
            stop_event = self._stop_event

            def run() -> None:
                while not stop_event.wait(self.interval):
                    try:
                        self.poll()
                    except Exception:
                        logger.error("Unexpected error polling %s", path, exc_info=True)

            self._thread = threading.Thread(target=run, name="file-tailer", daemon=True)
            self._thread.start()

    def stop(self, wait: bool = True) -> None:
        """
        Stop tailing; lines of an in-flight chunk not yet emitted are dropped.

        Args:
            wait: Join the polling thread. Without it a poll blocked on
                resolution finishes in the background and emits nothing.
        """
        self._stop_event.set()
        thread = self._thread
        if wait and thread and thread is not threading.current_thread():
            thread.join(timeout=5)
        self._thread = None
        if self.tail_state:
            logger.debug("Stopped tailing %s", self.tail_state.file_path)
        self.tail_state = None
        self.state = TailerState.IDLE

    def poll(self) -> list[NotificationEvent]:
        """
        Check the file once and process any new complete lines.

        Returns:
            The events emitted by this poll, in file order
        """
        with self._poll_lock:
            tail = self.tail_state
            stop_event = self._stop_event
            if tail is None or stop_event.is_set():
                return []

            lines = self._read_new_lines(tail)
            emitted: list[NotificationEvent] = []
            for line in lines:
                if stop_event.is_set():
                    logger.debug("Tailer stopped; dropping remaining lines of %s", tail.file_path)
                    break
                event = self._process_line(line)
                if event is None:
                    continue
                # Resolution can block on the network; a stop issued meanwhile wins
                if stop_event.is_set():
                    logger.debug("Tailer stopped; discarding resolved notification %s", event.id)
                    break
                try:
                    self.on_event(event)
                except Exception:
                    logger.error("Error delivering notification %s", event.id, exc_info=True)
                emitted.append(event)
            return emitted

    def _read_new_lines(self, tail: TailState) -> list[str]:
        """Read [offset, size), split into lines and commit the new offset."""
        try:
            size = os.stat(tail.file_path).st_size
        except OSError as e:
            self._report(ReadFailure(tail.file_path, tail.byte_offset, e))
            return []

        if size < tail.byte_offset:
            logger.info("File size regression detected for %s. Resetting offset.", tail.file_path)
            tail.byte_offset = 0
            tail.pending_fragment = b""
        if size == tail.byte_offset:
            return []

        self.state = TailerState.READING
        try:
            with open(tail.file_path, "rb") as f:
                f.seek(tail.byte_offset)
                chunk = f.read(size - tail.byte_offset)
        except OSError as e:
            self._report(ReadFailure(tail.file_path, tail.byte_offset, e))
            return []
        finally:
            if not self._stop_event.is_set():
                self.state = TailerState.WATCHING

        pieces = (tail.pending_fragment + chunk).split(b"\n")
        tail.pending_fragment = pieces.pop()
        tail.byte_offset += len(chunk)

        return [
            piece.decode("utf-8", errors="replace").rstrip("\r")
            for piece in pieces
        ]

    def _process_line(self, line: str) -> NotificationEvent | None:
        if is_candidate(line):
            logger.debug("Found notification line: %s", line)
        try:
            event = self.parser(line)
        except ParseMismatch as e:
            logger.warning("Failed to match log line: %s", e.line)
            self._report(e)
            return None

        if event is not None and self.resolver is not None:
            event = self.resolver.resolve(event)
        return event

    def _report(self, error: InviteWatchError) -> None:
        if isinstance(error, ReadFailure):
            logger.error("%s", error)
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:
            logger.error("Error reporting tailer failure", exc_info=True)
