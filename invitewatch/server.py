"""
Local world metadata proxy.

Serves cached world lookups over HTTP so several processes can share one
cache and one upstream rate budget:

    GET /health             -> {"status": "ok", ...}
    GET /metadata/<id>      -> world JSON, 404 if unknown, 502 on upstream failure
    GET /api/world/<id>     -> same as /metadata/<id>
"""

import http.server
import json
import socketserver
import threading
from typing import Any
from urllib.parse import unquote, urlsplit

from invitewatch.api import WorldApiClient
from invitewatch.cache import MetadataCache
from invitewatch.core import WorldInfo
from invitewatch.errors import RemoteFetchFailure, WorldNotFound
from invitewatch.logging_config import get_logger

logger = get_logger(__name__)

ROUTE_PREFIXES = ("/metadata/", "/api/world/")


class _ThreadingServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


class MetadataServer:
    """
    Threaded HTTP server answering world metadata lookups.

    Config:
        host: Host to bind to (default: "127.0.0.1" for localhost only)
        port: Port to listen on (default: 3737, 0 picks a free port)
    """

    def __init__(
        self,
        client: WorldApiClient,
        cache: MetadataCache | None = None,
        host: str = "127.0.0.1",
        port: int = 3737
    ) -> None:
        self.client = client
        self.cache = cache if cache is not None else MetadataCache()
        self.host = host
        self.port = port
        self.server: socketserver.TCPServer | None = None
        self.server_thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); differs from the configured port when it was 0."""
        if self.server is None:
            return (self.host, self.port)
        host, port = self.server.server_address[:2]
        return (str(host), int(port))

    def lookup(self, world_id: str) -> tuple[int, dict[str, Any]]:
        """Resolve one world id into an HTTP status and JSON body."""
        if not world_id:
            return 400, {"error": "World ID is required"}

        cached: WorldInfo | None = self.cache.get(world_id)
        if cached is not None:
            logger.debug("Cache hit for world: %s", world_id)
            return 200, cached.to_dict()

        try:
            info = self.client.fetch_world(world_id)
        except WorldNotFound:
            return 404, {"error": "World not found"}
        except RemoteFetchFailure as e:
            logger.error("Error fetching world info for %s: %s", world_id, e.reason)
            return 502, {"error": "Failed to fetch world information", "details": e.reason}

        self.cache.put(world_id, info)
        return 200, info.to_dict()

    def start(self) -> None:
        """Start serving on a background thread."""
        lookup = self.lookup

        class MetadataHandler(http.server.BaseHTTPRequestHandler):
            """Routes GET requests to the lookup."""

            def log_message(self, format: str, *args: Any) -> None:  # pylint: disable=redefined-builtin
                logger.debug("%s - %s", self.client_address[0], format % args)

            def _send_json(self, status: int, body: dict[str, Any]) -> None:
                data = json.dumps(body).encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(data)))
                self.send_header("Access-Control-Allow-Origin", "*")
                self.end_headers()
                self.wfile.write(data)

            def do_GET(self) -> None:
                """Handle GET requests."""
                path = urlsplit(self.path).path

                if path == "/health":
                    self._send_json(200, {"status": "ok", "message": "Metadata server is running"})
                    return

                for prefix in ROUTE_PREFIXES:
                    if path.startswith(prefix):
                        world_id = unquote(path[len(prefix):]).strip("/")
                        try:
                            status, body = lookup(world_id)
                        except Exception:
                            logger.error("Error serving world %s", world_id, exc_info=True)
                            status, body = 500, {"error": "Internal server error"}
                        self._send_json(status, body)
                        return

                self._send_json(404, {"error": "Not found"})

        self.server = _ThreadingServer((self.host, self.port), MetadataHandler)

        self.server_thread = threading.Thread(
            target=self.server.serve_forever,
            name="metadata-server",
            daemon=True
        )
        self.server_thread.start()

        host, port = self.address
        logger.info("Metadata server running on http://%s:%d", host, port)

    def stop(self) -> None:
        """Stop the HTTP server."""
        if self.server:
            self.server.shutdown()
            self.server.server_close()

            if self.server_thread:
                self.server_thread.join(timeout=5)

            self.server = None
            logger.info("Metadata server stopped")
