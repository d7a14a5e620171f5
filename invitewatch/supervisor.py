"""
Keeps a FileTailer pointed at the newest log file in a directory.
"""

import os
import threading
from collections.abc import Callable
from fnmatch import fnmatchcase
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers.polling import PollingObserver

from invitewatch.core import EventSink
from invitewatch.errors import DirectoryUnavailable, InviteWatchError
from invitewatch.logging_config import get_logger
from invitewatch.resolver import MetadataResolver
from invitewatch.tailer import DEFAULT_POLL_INTERVAL_SECONDS, FileTailer

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = get_logger(__name__)

LOG_FILE_PATTERN = "output_log_*.txt"
DEFAULT_DIRECTORY_INTERVAL_SECONDS = 2.0


def is_log_file(path: str | Path) -> bool:
    """Case-sensitive match of the file name against LOG_FILE_PATTERN."""
    return fnmatchcase(Path(path).name, LOG_FILE_PATTERN)


def find_latest_log_file(directory: str | Path) -> str | None:
    """
    Return the most recently modified log file in `directory`.

    Ties on modification time go to the lexicographically smallest path.
    """
    candidates: list[tuple[float, str]] = []
    for entry in os.scandir(directory):
        if not entry.is_file() or not is_log_file(entry.name):
            continue
        try:
            mtime = entry.stat().st_mtime
        except OSError:
            continue
        candidates.append((mtime, entry.path))

    if not candidates:
        return None
    candidates.sort(key=lambda c: (-c[0], c[1]))
    return candidates[0][1]


class DirectorySupervisor:
    """
    Watches one directory and tails its newest `output_log_*.txt`.

    Files that already exist when start() runs are only considered for
    the initial selection; afterwards every newly created matching file
    replaces the current one. Older files are never revisited.
    """

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        directory: str | Path,
        sink: EventSink,
        resolver: MetadataResolver | None = None,
        file_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        directory_interval: float = DEFAULT_DIRECTORY_INTERVAL_SECONDS,
        tailer_factory: Callable[[], FileTailer] | None = None,
    ) -> None:
        self.directory = Path(directory)
        self.sink = sink
        self.resolver = resolver
        self.file_interval = file_interval
        self.directory_interval = directory_interval
        self._tailer_factory = tailer_factory or self._default_tailer
        self.tailer: FileTailer | None = None
        self.observer: BaseObserver | None = None
        self._lock = threading.Lock()
        self._running = False

    @property
    def current_file(self) -> str | None:
        return self.tailer.file_path if self.tailer else None

    def _default_tailer(self) -> FileTailer:
        return FileTailer(
            on_event=self.sink.on_notification,
            resolver=self.resolver,
            on_error=self._report,
            interval=self.file_interval,
        )

    def _report(self, error: InviteWatchError) -> None:
        self.sink.on_status(str(error))

    def _check_directory(self) -> None:
        if not self.directory.exists():
            raise DirectoryUnavailable(str(self.directory), "does not exist")
        if not self.directory.is_dir():
            raise DirectoryUnavailable(str(self.directory), "not a directory")
        if not os.access(self.directory, os.R_OK | os.X_OK):
            raise DirectoryUnavailable(str(self.directory), "permission denied")

    def start(self, background: bool = True) -> bool:
        """
        Select the newest log file and begin watching for new ones.

        Args:
            background: Run the directory observer and tailer threads

        Returns:
            False if the directory is unavailable (nothing is started)
        """
        try:
            self._check_directory()
        except DirectoryUnavailable as e:
            logger.error("%s", e)
            self.sink.on_status(str(e))
            return False

        logger.info("Watching log directory: %s", self.directory)
        self._running = True

        # Start observing before selecting so a file created in between
        # is reported as new rather than missed
        if background:
            self.observer = PollingObserver(timeout=self.directory_interval)
            self.observer.schedule(self._create_event_handler(), str(self.directory), recursive=False)
            self.observer.start()

        try:
            latest = find_latest_log_file(self.directory)
        except OSError as e:
            logger.error("Error reading log directory %s: %s", self.directory, e)
            self.sink.on_status(f"Error reading log directory: {e}")
            latest = None

        if latest:
            logger.info("Latest log file found: %s", latest)
            with self._lock:
                self._start_tailer(latest, background)
            self.sink.on_current_file(latest)
        else:
            logger.info("No matching log files found in %s", self.directory)
            self.sink.on_status("No matching log files found.")
        return True

    def stop(self) -> None:
        """Stop the directory observer and the active tailer."""
        self._running = False
        if self.observer:
            self.observer.stop()
            self.observer.join(timeout=5)
            self.observer = None
        with self._lock:
            if self.tailer:
                self.tailer.stop()
                self.tailer = None
        logger.info("Stopped watching %s", self.directory)

    def handle_new_file(self, path: str, background: bool = True) -> bool:
        """
        Switch to a newly created log file.

        Returns:
            True if the tailer was moved to `path`
        """
        if not self._running or not is_log_file(path):
            return False

        with self._lock:
            if self.current_file and os.path.abspath(self.current_file) == os.path.abspath(path):
                return False
            logger.info("New log file detected, switching: %s", path)
            self._start_tailer(path, background)

        self.sink.on_current_file(path)
        self.sink.on_file_switched(path)
        return True

    def _start_tailer(self, path: str, background: bool) -> None:
        if self.tailer:
            self.tailer.stop(wait=False)
        self.tailer = self._tailer_factory()
        self.tailer.start(path, background=background)

    def _create_event_handler(self) -> FileSystemEventHandler:
        """Create a watchdog event handler that forwards new log files."""
        handle_new_file = self.handle_new_file

        def as_str(raw: str | bytes) -> str:
            return raw if isinstance(raw, str) else raw.decode()

        class Handler(FileSystemEventHandler):
            """Forwards created or moved-in log files to the supervisor."""

            def on_created(self, event: FileSystemEvent) -> None:
                if not event.is_directory:
                    handle_new_file(as_str(event.src_path))

            def on_moved(self, event: FileSystemEvent) -> None:
                if not event.is_directory:
                    handle_new_file(as_str(event.dest_path))

        return Handler()
