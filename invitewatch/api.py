"""
HTTP client for world metadata.

Mind the remote API's terms of use: every lookup goes through the
resolver's cache first so a given world is fetched at most once per TTL.
"""

from typing import Any

import requests
from pydantic import ValidationError

from invitewatch import __version__
from invitewatch.core import WorldInfo
from invitewatch.errors import RemoteFetchFailure, WorldNotFound
from invitewatch.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_URL_TEMPLATE = "https://api.vrchat.cloud/api/1/worlds/{id}"
DEFAULT_USER_AGENT = f"InviteWatch/{__version__}"


class WorldApiClient:
    """
    Fetches world metadata with `GET <url_template>`.

    Config:
        url_template: URL with an `{id}` placeholder
        timeout: Request timeout in seconds (default: 10)
        user_agent: User-Agent header sent with each request
    """

    def __init__(
        self,
        url_template: str = DEFAULT_URL_TEMPLATE,
        timeout: float = 10,
        user_agent: str = DEFAULT_USER_AGENT,
        session: requests.Session | None = None
    ) -> None:
        self.url_template = url_template
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def __call__(self, world_id: str) -> WorldInfo:
        return self.fetch_world(world_id)

    def fetch_world(self, world_id: str) -> WorldInfo:
        """
        Fetch metadata for one world.

        Raises:
            WorldNotFound: The API answered 404
            RemoteFetchFailure: Transport error, other non-2xx status,
                or a payload that is not a world object
        """
        url = self.url_template.format(id=world_id)
        logger.info("Fetching world info: %s", url)

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteFetchFailure(world_id, str(e)) from e

        if response.status_code == 404:
            raise WorldNotFound(world_id)
        if not response.ok:
            raise RemoteFetchFailure(
                world_id, f"HTTP {response.status_code} {response.reason}"
            )

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise RemoteFetchFailure(world_id, "response is not JSON") from e

        if not isinstance(payload, dict):
            raise RemoteFetchFailure(world_id, "response is not a JSON object")

        try:
            info = WorldInfo.model_validate(payload)
        except ValidationError as e:
            raise RemoteFetchFailure(world_id, f"malformed payload: {e}") from e

        if not info.id:
            info = info.model_copy(update={"id": world_id})
        return info

    def close(self) -> None:
        self.session.close()
