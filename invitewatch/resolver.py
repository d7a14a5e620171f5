"""
Fills in world names for invites that arrived without one.
"""

import dataclasses
from collections.abc import Callable

from invitewatch.cache import MetadataCache
from invitewatch.core import NotificationEvent, WorldInfo
from invitewatch.errors import RemoteFetchFailure, WorldNotFound
from invitewatch.logging_config import get_logger

logger = get_logger(__name__)

WorldFetcher = Callable[[str], WorldInfo]


class MetadataResolver:
    """
    Resolves `world_name` for invite events via the cache, then the API.

    Only successful fetches are cached. A 404 or any transient failure
    degrades to using the world id as the name and leaves the cache
    untouched, so the next invite for that id fetches again.
    """

    def __init__(self, cache: MetadataCache, fetch: WorldFetcher) -> None:
        self.cache = cache
        self.fetch = fetch
        self.fetch_count = 0

    def needs_resolution(self, event: NotificationEvent) -> bool:
        """True for invites that carry a world id but no world name."""
        return event.is_invite and not event.world_name and bool(event.world_id)

    def resolve(self, event: NotificationEvent) -> NotificationEvent:
        """
        Return the event with its world name filled in.

        Events that need nothing are returned as-is without touching the
        cache or the network.
        """
        world_id = event.world_id
        if world_id is None or not self.needs_resolution(event):
            return event

        cached = self.cache.get(world_id)
        if cached is not None:
            logger.debug("Cache hit for world: %s", world_id)
            return dataclasses.replace(event, world_name=cached.name, world=cached)

        info = self._fetch(world_id)
        if info is None:
            return dataclasses.replace(event, world_name=world_id)

        self.cache.put(world_id, info)
        logger.info("Fetched world name from API: %s", info.name)
        return dataclasses.replace(event, world_name=info.name, world=info)

    def _fetch(self, world_id: str) -> WorldInfo | None:
        self.fetch_count += 1
        try:
            return self.fetch(world_id)
        except WorldNotFound:
            logger.warning("World not found: %s", world_id)
        except RemoteFetchFailure as e:
            logger.error("Failed to fetch world name from API: %s", e)
        except Exception:
            logger.error("Unexpected error fetching world %s", world_id, exc_info=True)
        return None
