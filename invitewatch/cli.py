"""
InviteWatch CLI - command line interface for the log monitor.

Provides commands for:
- Configuration validation
- Running the monitor in the foreground
- Offline parsing of an existing log file
- World metadata lookups and the local metadata proxy
- Log directory settings
- Sending a test notification through the configured sinks
"""

import argparse
import sys
import time
from collections.abc import Callable
from pathlib import Path

import yaml

from invitewatch import sinks  # noqa: F401  # pylint: disable=unused-import
from invitewatch.api import WorldApiClient
from invitewatch.cache import MetadataCache
from invitewatch.config import Config, load_config
from invitewatch.core import NotificationEvent, NotificationKind
from invitewatch.daemon import InviteWatchDaemon, SinkFanout
from invitewatch.errors import ParseMismatch, RemoteFetchFailure, WorldNotFound
from invitewatch.logging_config import get_logger, setup_logging
from invitewatch.parser import parse_or_raise
from invitewatch.registry import create_sink
from invitewatch.resolver import MetadataResolver
from invitewatch.server import MetadataServer
from invitewatch.settings import SettingsStore

logger = get_logger(__name__)


def _load(args: argparse.Namespace) -> Config | None:
    """Load the configuration; a missing or invalid file is reported and yields None."""
    try:
        return load_config(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"✗ Configuration invalid: {e}", file=sys.stderr)
        return None


def _client(config: Config) -> WorldApiClient:
    return WorldApiClient(
        url_template=config.api.url_template,
        timeout=config.api.timeout_seconds,
        user_agent=config.api.user_agent,
    )


def cmd_config_validate(args: argparse.Namespace) -> int:
    """Validate configuration file."""
    config = _load(args)
    if config is None:
        return 1

    print(f"✓ Configuration valid: {args.config or '(defaults)'}")
    print(f"  - Log directory: {config.log_directory or '(not set)'}")
    print(f"  - {len(config.sinks)} sink(s) configured")
    print(f"  - Cache TTL: {config.cache.ttl_seconds:g}s")
    print(f"  - API: {config.api.url_template}")
    return 0


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Run the monitor in the foreground."""
    try:
        daemon = InviteWatchDaemon(config)
        if args.directory:
            daemon.settings.save_log_directory(args.directory)
        daemon.start()
        return 0
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0
    except Exception as e:
        print(f"Error starting monitor: {e}", file=sys.stderr)
        return 1


def cmd_parse(args: argparse.Namespace, config: Config) -> int:
    """Parse every notification in an existing log file."""
    log_file = Path(args.file)
    if not log_file.exists():
        print(f"Error: Log file not found: {log_file}", file=sys.stderr)
        return 1

    resolver = None
    if args.resolve:
        resolver = MetadataResolver(MetadataCache(ttl=config.cache.ttl_seconds), _client(config))

    found = 0
    failed = 0
    with log_file.open('r', encoding='utf-8', errors='replace') as f:
        for line in f:
            try:
                event = parse_or_raise(line.rstrip("\r\n"))
            except ParseMismatch as e:
                failed += 1
                logger.warning("Failed to match log line: %s", e.line)
                continue
            if event is None:
                continue
            if resolver:
                event = resolver.resolve(event)
            found += 1
            where = f" -> {event.world_name or event.world_id}" if event.is_invite else ""
            print(f"{event.timestamp}  {event.kind.value:<13} {event.username}{where}")

    print(f"\n{found} notification(s), {failed} unparseable line(s)")
    return 0


def cmd_world(args: argparse.Namespace, config: Config) -> int:
    """Look up one world."""
    client = _client(config)
    try:
        info = client.fetch_world(args.world_id)
    except WorldNotFound:
        print(f"✗ World not found: {args.world_id}", file=sys.stderr)
        return 1
    except RemoteFetchFailure as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    print(f"{info.name} by {info.author_name}")
    print(f"  Capacity: {info.capacity}  Visits: {info.visits}  Favorites: {info.favorites}")
    if info.tags:
        print(f"  Tags: {', '.join(info.tags)}")
    return 0


def cmd_directory_get(args: argparse.Namespace, config: Config) -> int:
    """Show the log directory that will be watched."""
    saved = SettingsStore(config.settings_file).load().log_directory
    directory = saved or config.log_directory
    print(directory or "(not set)")
    return 0


def cmd_directory_set(args: argparse.Namespace, config: Config) -> int:
    """Save the log directory."""
    directory = Path(args.path).expanduser()
    if not directory.is_dir():
        print(f"Error: Not a directory: {directory}", file=sys.stderr)
        return 1

    if not SettingsStore(config.settings_file).save_log_directory(str(directory)):
        print("✗ Failed to save settings", file=sys.stderr)
        return 1
    print(f"✓ Log directory saved: {directory}")
    return 0


def cmd_test_notification(args: argparse.Namespace, config: Config) -> int:
    """Send a sample invite through the configured sinks."""
    sink = SinkFanout([create_sink(s.type, s.config) for s in config.sinks])
    event = NotificationEvent(
        id="ntf_test",
        timestamp=time.strftime("%Y.%m.%d %H:%M:%S"),
        username="Test User",
        user_id="usr_test",
        kind=NotificationKind.INVITE,
        world_name="Test World",
        world_id="wrld_test",
        instance_id="12345",
        message="This is a test notification",
    )
    sink.on_notification(event)
    print(f"Sent test notification to {len(config.sinks)} sink(s)")
    return 0


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Run only the metadata proxy."""
    client = _client(config)
    cache = MetadataCache(ttl=config.cache.ttl_seconds)
    server = MetadataServer(
        client,
        cache=cache,
        host=args.host or config.server.host,
        port=args.port if args.port is not None else config.server.port,
    )
    cache.start_sweeper(config.cache.sweep_interval_seconds)
    server.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.stop()
        cache.stop_sweeper()
        client.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="invitewatch",
        description="InviteWatch - invite notifications from client log files"
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (defaults are used when omitted)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: INFO for run/serve, WARNING otherwise)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="subcommand")
    config_subparsers.add_parser("validate", help="Validate configuration file")

    run_parser = subparsers.add_parser("run", help="Run the monitor (foreground)")
    run_parser.add_argument("-d", "--directory", help="Log directory to watch (saved)")

    parse_parser = subparsers.add_parser("parse", help="List notifications in a log file")
    parse_parser.add_argument("file", help="Log file to parse")
    parse_parser.add_argument(
        "--resolve",
        action="store_true",
        help="Look up missing world names"
    )

    world_parser = subparsers.add_parser("world", help="Look up world metadata")
    world_parser.add_argument("world_id", help="World id (wrld_...)")

    directory_parser = subparsers.add_parser("directory", help="Log directory settings")
    directory_subparsers = directory_parser.add_subparsers(dest="subcommand")
    directory_subparsers.add_parser("get", help="Show the watched directory")
    set_parser = directory_subparsers.add_parser("set", help="Save the watched directory")
    set_parser.add_argument("path", help="Directory containing output_log_*.txt")

    subparsers.add_parser("test-notification", help="Send a sample invite to all sinks")

    serve_parser = subparsers.add_parser("serve", help="Run the metadata proxy only")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to listen on")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    default_level = "INFO" if args.command in ("run", "serve") else "WARNING"
    setup_logging(level=args.log_level or default_level)

    if args.command == "config":
        if args.subcommand == "validate":
            return cmd_config_validate(args)
        parser.print_help()
        return 0

    handler: Callable[[argparse.Namespace, Config], int] | None
    if args.command == "directory":
        handler = {"get": cmd_directory_get, "set": cmd_directory_set}.get(args.subcommand)
    else:
        handler = {
            "run": cmd_run,
            "parse": cmd_parse,
            "world": cmd_world,
            "test-notification": cmd_test_notification,
            "serve": cmd_serve,
        }.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    config = _load(args)
    if config is None:
        return 1
    return handler(args, config)


if __name__ == '__main__':
    sys.exit(main())
