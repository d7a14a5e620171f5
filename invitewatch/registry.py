"""
Sink registry and factory for InviteWatch.

Sink implementations register themselves under a type name so the
configuration file can refer to them by that name.
"""

from collections.abc import Callable
from typing import Any

from invitewatch.core import EventSink


class SinkRegistry:
    """Maps sink type names to implementation classes."""

    def __init__(self) -> None:
        self._sinks: dict[str, type[EventSink]] = {}

    def register_sink(self, type_name: str, cls: type[EventSink]) -> None:
        """Register a sink implementation."""
        self._sinks[type_name] = cls

    def get_sink(self, type_name: str) -> type[EventSink]:
        """Get a sink class by type name."""
        if type_name not in self._sinks:
            raise ValueError(f"Unknown sink type: {type_name}")
        return self._sinks[type_name]

    def list_sinks(self) -> list[str]:
        """List all registered sink type names."""
        return list(self._sinks.keys())


# Global registry instance
_registry = SinkRegistry()


def create_sink(type_name: str, config: dict[str, Any]) -> EventSink:
    """Create a sink instance from configuration."""
    cls = _registry.get_sink(type_name)
    return cls(config)


def register_sink(type_name: str) -> Callable[[type[EventSink]], type[EventSink]]:
    """Decorator to register a sink class."""
    def decorator(cls: type[EventSink]) -> type[EventSink]:
        _registry.register_sink(type_name, cls)
        return cls
    return decorator


def get_registry() -> SinkRegistry:
    """Get the global sink registry."""
    return _registry
