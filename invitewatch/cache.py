"""
TTL cache for remote world metadata.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from invitewatch.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 10 * 60


@dataclass
class CacheEntry:
    """A cached value and when it was stored."""
    key: str
    value: Any
    fetched_at: float


class MetadataCache:
    """
    Maps entity ids to fetched metadata for a limited time.

    Expired entries are invisible to get() immediately, but only leave
    memory when sweep() runs. The sweeper thread runs sweep() on a fixed
    interval so ids looked up exactly once do not accumulate.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._stop_event = threading.Event()

    def _is_valid(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.fetched_at < self.ttl

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not self._is_valid(entry, self._clock()):
                return None
            return entry.value

    def put(self, key: str, value: Any) -> None:
        """Insert or overwrite a value, stamping the current time."""
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, fetched_at=self._clock())

    def sweep(self) -> int:
        """
        Remove every entry older than the TTL.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items()
                if not self._is_valid(entry, now)
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info("Cleaned up %d expired cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()
        logger.info("Metadata cache cleared")

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[call-overload]
            return entry is not None and self._is_valid(entry, self._clock())

    def __len__(self) -> int:
        """Number of physically stored entries, expired ones included."""
        with self._lock:
            return len(self._entries)

    def start_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        """Run sweep() every `interval` seconds on a background thread."""
        if self._sweeper and self._sweeper.is_alive():
            return
        self._stop_event.clear()

        def run() -> None:
            while not self._stop_event.wait(interval):
                try:
                    self.sweep()
                except Exception:
                    logger.error("Cache sweep failed", exc_info=True)

        self._sweeper = threading.Thread(target=run, name="metadata-cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        """Stop the background sweeper."""
        if self._sweeper:
            self._stop_event.set()
            self._sweeper.join(timeout=5)
            self._sweeper = None
