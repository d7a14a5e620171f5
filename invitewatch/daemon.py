"""
Main daemon entry point for InviteWatch.
"""

import argparse
import signal
import sys
import time
from typing import Any

from invitewatch import sinks  # noqa: F401  # pylint: disable=unused-import
from invitewatch.api import WorldApiClient
from invitewatch.cache import MetadataCache
from invitewatch.config import Config, load_config
from invitewatch.core import EventSink, NotificationEvent
from invitewatch.logging_config import get_logger, setup_logging
from invitewatch.registry import create_sink
from invitewatch.resolver import MetadataResolver
from invitewatch.server import MetadataServer
from invitewatch.settings import SettingsStore
from invitewatch.supervisor import DirectorySupervisor

logger = get_logger(__name__)


class SinkFanout(EventSink):
    """Delivers every signal to each configured sink; one failing sink does not block the rest."""

    def __init__(self, targets: list[EventSink]) -> None:
        super().__init__({})
        self.targets = targets

    def _deliver(self, method: str, *args: Any) -> None:
        for target in self.targets:
            try:
                getattr(target, method)(*args)
            except Exception:
                logger.error(
                    "Error delivering %s via %s",
                    method,
                    target.__class__.__name__,
                    exc_info=True
                )

    def on_notification(self, event: NotificationEvent) -> None:
        logger.info(
            "Notification %s (%s) from %s", event.id, event.kind.value, event.username
        )
        self._deliver("on_notification", event)

    def on_current_file(self, path: str) -> None:
        self._deliver("on_current_file", path)

    def on_file_switched(self, path: str) -> None:
        self._deliver("on_file_switched", path)

    def on_status(self, message: str) -> None:
        logger.debug("Status: %s", message)
        self._deliver("on_status", message)


class InviteWatchDaemon:
    """Wires the cache, resolver, sinks and directory supervisor together."""

    def __init__(self, config: Config, sink: EventSink | None = None) -> None:
        """
        Initialize the daemon.

        Args:
            config: Validated configuration
            sink: Output sink; built from config.sinks when omitted
        """
        self.config = config
        self.settings = SettingsStore(config.settings_file)
        self.cache = MetadataCache(ttl=config.cache.ttl_seconds)
        self.client = WorldApiClient(
            url_template=config.api.url_template,
            timeout=config.api.timeout_seconds,
            user_agent=config.api.user_agent,
        )
        self.resolver = MetadataResolver(self.cache, self.client)
        self.sink = sink or SinkFanout([
            create_sink(s.type, s.config) for s in config.sinks
        ])
        self.server: MetadataServer | None = None
        self.supervisor: DirectorySupervisor | None = None
        self.running = False

    @classmethod
    def from_config_file(cls, config_path: str | None) -> "InviteWatchDaemon":
        return cls(load_config(config_path))

    @property
    def log_directory(self) -> str | None:
        """Directory to watch: saved settings win over the config file."""
        return self.settings.load().log_directory or self.config.log_directory

    def _start_supervisor(self, directory: str) -> bool:
        self.supervisor = DirectorySupervisor(
            directory,
            sink=self.sink,
            resolver=self.resolver,
            file_interval=self.config.polling.file_interval_seconds,
            directory_interval=self.config.polling.directory_interval_seconds,
        )
        return self.supervisor.start()

    def set_log_directory(self, directory: str) -> bool:
        """
        Persist a new log directory and restart watching against it.

        Returns:
            True if the directory was saved and watching started
        """
        saved = self.settings.save_log_directory(directory)
        self.config = self.config.model_copy(update={"log_directory": directory})

        if self.supervisor:
            self.supervisor.stop()
            self.supervisor = None
        return self._start_supervisor(directory) and saved

    def start(self, block: bool = True) -> None:
        """Start the daemon."""
        logger.info("Starting InviteWatch daemon")

        self.cache.start_sweeper(self.config.cache.sweep_interval_seconds)

        if self.config.server.enabled:
            self.server = MetadataServer(
                self.client,
                cache=self.cache,
                host=self.config.server.host,
                port=self.config.server.port,
            )
            self.server.start()

        directory = self.log_directory
        if directory:
            self._start_supervisor(directory)
        else:
            logger.info("No log directory configured.")
            self.sink.on_status("No log directory configured.")

        self.running = True
        logger.info("InviteWatch daemon running")

        if not block:
            return
        try:
            while self.running:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Shutdown signal received")
            self.stop()

    def stop(self) -> None:
        """Stop the daemon."""
        logger.info("Stopping InviteWatch daemon")
        self.running = False

        if self.supervisor:
            self.supervisor.stop()
            self.supervisor = None
        if self.server:
            self.server.stop()
            self.server = None
        self.cache.stop_sweeper()
        self.client.close()

        logger.info("InviteWatch daemon stopped")


def main() -> None:
    """Entry point for the daemon."""
    parser = argparse.ArgumentParser(description="InviteWatch log monitoring daemon")
    parser.add_argument(
        '--config',
        help='Path to configuration file (defaults are used when omitted)'
    )
    parser.add_argument(
        '--directory',
        help='Log directory to watch (overrides config and saved settings)'
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Log level (default: INFO)'
    )
    parser.add_argument(
        '--log-file',
        help='Optional log file path (logs to console if not specified)'
    )
    args = parser.parse_args()

    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.critical("%s", e)
        sys.exit(1)

    daemon = InviteWatchDaemon(config)
    if args.directory:
        # Saved settings win over the config file, so persist the override
        daemon.settings.save_log_directory(args.directory)

    def signal_handler(_sig: int, _frame: Any) -> None:
        logger.info("Shutdown signal received")
        daemon.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        daemon.start()
    except Exception:
        logger.critical("Fatal error", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
